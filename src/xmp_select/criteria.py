"""Selection criteria: the immutable description of one selection run."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .errors import ArgFileNotFound, ConfigurationError
from .extensions import resolve_extensions

__all__ = ["SelectionCriteria", "build_criteria", "check_argfiles"]


@dataclass(frozen=True)
class SelectionCriteria:
    """What to select and where; read-only once built."""

    root: Path
    extensions: tuple[str, ...]
    expression: Optional[str] = None
    argfiles: tuple[Path, ...] = ()
    include_sidecars: bool = False
    sidecar_extension: str = "xmp"

    @property
    def root_bytes(self) -> bytes:
        return os.fsencode(self.root)


def check_argfiles(argfiles: Iterable[Path]) -> None:
    """Raise `ArgFileNotFound` for the first argfile that is not a regular file."""

    for argfile in argfiles:
        if not Path(argfile).is_file():
            raise ArgFileNotFound(argfile)


def build_criteria(
    root: str | os.PathLike[str],
    *,
    extensions: str,
    expression: Optional[str] = None,
    argfiles: Iterable[str | os.PathLike[str]] = (),
    include_sidecars: bool = False,
    sidecar_extension: str = "xmp",
) -> SelectionCriteria:
    """
    Validate caller input and return the criteria for one run.

    Argfiles are resolved against the current directory (not the root) and
    must exist. No external process is started here.

    Raises:
        ConfigurationError: for a missing root, an empty extension list, or a
            missing argfile.
    """

    root_path = Path(root).expanduser()
    try:
        resolved_root = root_path.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise ConfigurationError(f"Cannot resolve ROOT path: {root}") from exc
    if not resolved_root.is_dir():
        raise ConfigurationError(f"ROOT is not a directory: {root}")

    resolved_exts = resolve_extensions(extensions)

    resolved_argfiles = tuple(Path(item).expanduser().absolute() for item in argfiles)
    check_argfiles(resolved_argfiles)

    expr = expression if expression else None
    return SelectionCriteria(
        root=resolved_root,
        extensions=resolved_exts,
        expression=expr,
        argfiles=resolved_argfiles,
        include_sidecars=bool(include_sidecars),
        sidecar_extension=sidecar_extension,
    )
