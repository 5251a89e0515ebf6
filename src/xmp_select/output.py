"""Raw NUL list and per-file formatted output for a selection result."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path
from typing import BinaryIO, Optional

from .engine import SelectionResult, relative_to_root
from .errors import EvaluatorFailed, PerFileRenderError
from .evaluator import MetadataEvaluator
from .sidecars import sidecar_for

logger = logging.getLogger(__name__)

__all__ = [
    "FILE_PATH_PLACEHOLDER",
    "emit_raw",
    "emit_formatted",
    "display_path",
    "escape_template_value",
    "lookup_first",
    "substitute_placeholders",
]

FILE_PATH_PLACEHOLDER = "FilePath"

# Characters that may continue an ExifTool tag name ("XMP-dc:Subject").
_TAG_CONTINUATION = r"[\w:-]"


def emit_raw(result: SelectionResult, stream: BinaryIO) -> int:
    """Write each path NUL-terminated; return the number of paths written."""

    stream.write(result.to_nul())
    stream.flush()
    return len(result)


def display_path(path: bytes, root: bytes, display_root: str) -> bytes:
    """Swap the resolved *root* prefix of *path* for *display_root*."""

    rel = relative_to_root(path, root)
    if os.path.isabs(rel):
        return rel
    if not display_root:
        return rel
    return os.fsencode(display_root).rstrip(b"/") + b"/" + rel


def escape_template_value(value: str) -> str:
    """Escape ``$`` so a substituted value is printed literally by ExifTool."""

    return value.replace("$", "$$")


def substitute_placeholders(template: str, values: Mapping[str, str]) -> str:
    """
    Replace ``$NAME`` and ``${NAME}`` for every name in *values* in one pass.

    The longest name wins and a name never matches the prefix of a longer tag
    (``$XMP:Rating`` leaves ``$XMP:RatingPercent`` alone). ``$$`` is an
    escaped dollar and is left untouched. Values are inserted verbatim.
    """

    if not values:
        return template
    alternation = "|".join(re.escape(name) for name in sorted(values, key=len, reverse=True))
    pattern = re.compile(
        r"\$\$|\$\{(%s)\}|\$(%s)(?!%s)" % (alternation, alternation, _TAG_CONTINUATION)
    )

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1) or match.group(2)
        if name is None:
            return match.group(0)
        return values[name]

    return pattern.sub(_replace, template)


def lookup_first(
    evaluator: MetadataEvaluator,
    tag: str,
    sources: Sequence[bytes],
    default: str,
    *,
    cwd: Optional[Path] = None,
) -> str:
    """Return *tag* from the first source that has it, else *default*."""

    seen: set[bytes] = set()
    for source in sources:
        if source in seen:
            continue
        seen.add(source)
        try:
            value = evaluator.read_tag(source, tag, cwd=cwd)
        except (EvaluatorFailed, OSError) as exc:
            logger.debug("Reading %s from %s failed: %s", tag, os.fsdecode(source), exc)
            continue
        if value is not None:
            return value
    return default


def _render_line(
    evaluator: MetadataEvaluator,
    rel: bytes,
    template: str,
    *,
    root: Path,
    root_bytes: bytes,
    display_root: str,
    sidecar_tags: Mapping[str, str],
    sidecar_extension: str,
    is_file: Callable[[bytes], bool],
) -> bytes:
    values = {
        FILE_PATH_PLACEHOLDER: escape_template_value(os.fsdecode(display_path(rel, root_bytes, display_root))),
    }
    sidecar = sidecar_for(rel, sidecar_extension)
    if sidecar != rel and is_file(os.path.join(root_bytes, sidecar)):
        for tag, default in sidecar_tags.items():
            value = lookup_first(evaluator, tag, [sidecar, rel], default, cwd=root)
            values[tag] = escape_template_value(value)
    line_template = substitute_placeholders(template, values)
    try:
        return evaluator.render(rel, line_template, cwd=root)
    except (EvaluatorFailed, OSError) as exc:
        raise PerFileRenderError(rel, exc) from exc


def emit_formatted(
    paths: Iterable[bytes],
    evaluator: MetadataEvaluator,
    template: str,
    *,
    root: Path,
    stream: BinaryIO,
    display_root: str = "",
    sidecar_tags: Optional[Mapping[str, str]] = None,
    sidecar_extension: str = "xmp",
    is_file: Callable[[bytes], bool] = os.path.isfile,
) -> int:
    """
    Render *template* once per selected file and write the output.

    When a file has a sidecar, each tag in *sidecar_tags* is read from the
    sidecar first, then from the file itself, then falls back to its
    configured default; the value replaces ``$TAG`` in the template before
    ExifTool renders the rest from the file. Files that fail to render are
    skipped. Returns the number of files rendered.
    """

    tags = dict(sidecar_tags) if sidecar_tags is not None else {"XMP:Rating": "0"}
    root_bytes = os.fsencode(root)
    rendered = 0
    for path in paths:
        rel = relative_to_root(path, root_bytes)
        if not is_file(os.path.join(root_bytes, rel)):
            logger.debug("Skipping vanished file: %s", os.fsdecode(rel))
            continue
        try:
            line = _render_line(
                evaluator,
                rel,
                template,
                root=root,
                root_bytes=root_bytes,
                display_root=display_root,
                sidecar_tags=tags,
                sidecar_extension=sidecar_extension,
                is_file=is_file,
            )
        except PerFileRenderError as exc:
            logger.debug("%s", exc)
            continue
        stream.write(line)
        rendered += 1
    stream.flush()
    return rendered
