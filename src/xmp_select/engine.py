"""Three-pass selection: embedded matches, sidecar matches, optional sidecars."""

from __future__ import annotations

import itertools
import logging
import os
import tempfile
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Final, Optional

from .criteria import SelectionCriteria
from .errors import ConfigurationError, SelectionFailed, XmpSelectError
from .evaluator import MetadataEvaluator
from .sidecars import existing_sidecars, map_sidecar_pairs

logger = logging.getLogger(__name__)

__all__: Final = [
    "PASS_EMBEDDED",
    "PASS_SIDECAR",
    "PASS_INCLUDED_SIDECARS",
    "SelectionEngine",
    "SelectionResult",
    "SelectionWorkspace",
    "selection_workspace",
    "sort_unique",
    "relative_to_root",
]

PASS_EMBEDDED: Final = "embedded"
PASS_SIDECAR: Final = "sidecar"
PASS_INCLUDED_SIDECARS: Final = "include-sidecars"


@dataclass(frozen=True)
class SelectionResult:
    """Sorted, duplicate-free candidate paths."""

    paths: tuple[bytes, ...]
    list_path: Optional[Path] = None
    counts: Mapping[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.paths)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.paths)

    def to_nul(self) -> bytes:
        return b"".join(path + b"\0" for path in self.paths)


@dataclass(frozen=True)
class SelectionWorkspace:
    """Invocation-scoped scratch files for the combined and sorted streams."""

    directory: Path

    @property
    def combined(self) -> Path:
        return self.directory / "combined.nul"

    @property
    def selected(self) -> Path:
        return self.directory / "selected.nul"


@contextmanager
def selection_workspace(prefix: str = "xmp-select-") -> Iterator[SelectionWorkspace]:
    """Yield a workspace whose files are removed however the block exits."""

    with tempfile.TemporaryDirectory(prefix=prefix) as tmp:
        yield SelectionWorkspace(Path(tmp))


def sort_unique(records: Iterable[bytes]) -> list[bytes]:
    return sorted({record for record in records if record})


def relative_to_root(path: bytes, root: bytes) -> bytes:
    """Strip ``root/`` from *path*; other paths are returned unchanged."""

    prefix = root.rstrip(b"/") + b"/"
    if path.startswith(prefix):
        return path[len(prefix):]
    return path


class SelectionEngine:
    """
    Drives the evaluator for each pass and merges the results.

    Pass A asks for primaries whose own metadata matches. Pass B asks for
    matching sidecars and maps each back to its primary. Pass C, only with
    ``include_sidecars``, re-runs pass A and adds the sidecar of every match
    that has one, plus the sidecar behind every pass B primary. The union is
    sorted byte-wise and deduplicated, so the result does not depend on pass
    or enumeration order.
    """

    def __init__(
        self,
        evaluator: MetadataEvaluator,
        *,
        is_file: Callable[[bytes], bool] = os.path.isfile,
    ) -> None:
        self.evaluator = evaluator
        self.is_file = is_file

    def _embedded(self, criteria: SelectionCriteria) -> Iterator[bytes]:
        return self.evaluator.query(criteria, criteria.extensions)

    def _sidecar_mapped(self, criteria: SelectionCriteria) -> Iterator[tuple[bytes, bytes]]:
        sidecars = self.evaluator.query(criteria, [criteria.sidecar_extension])
        return map_sidecar_pairs(
            sidecars,
            criteria.extensions,
            root=criteria.root_bytes,
            sidecar_extension=criteria.sidecar_extension,
            is_file=self.is_file,
        )

    def _included_sidecars(self, criteria: SelectionCriteria) -> Iterator[bytes]:
        return existing_sidecars(
            self._embedded(criteria),
            root=criteria.root_bytes,
            sidecar_extension=criteria.sidecar_extension,
            is_file=self.is_file,
        )

    def iter_candidates(self, criteria: SelectionCriteria) -> Iterator[tuple[str, bytes]]:
        """Yield ``(pass, path)`` for passes A, B and C in that order."""

        root = criteria.root_bytes
        logger.info("Scanning for files with embedded metadata...")
        for path in self._embedded(criteria):
            logger.info("Found [embedded]: %s", os.fsdecode(relative_to_root(path, root)))
            yield PASS_EMBEDDED, path

        logger.info("Scanning for files with %s sidecar metadata...", criteria.sidecar_extension.upper())
        matched_sidecars: list[bytes] = []
        for sidecar, path in self._sidecar_mapped(criteria):
            logger.info(
                "Found [sidecar]: %s via %s",
                os.fsdecode(relative_to_root(path, root)),
                os.fsdecode(os.path.basename(sidecar)),
            )
            matched_sidecars.append(sidecar)
            yield PASS_SIDECAR, path

        if criteria.include_sidecars:
            for path in itertools.chain(self._included_sidecars(criteria), matched_sidecars):
                logger.debug("Including sidecar: %s", os.fsdecode(relative_to_root(path, root)))
                yield PASS_INCLUDED_SIDECARS, path

    def select(
        self,
        criteria: SelectionCriteria,
        workspace: Optional[SelectionWorkspace] = None,
    ) -> SelectionResult:
        """
        Run all passes and return the merged result.

        With a *workspace*, the sorted NUL list stays on disk at
        ``result.list_path`` until the workspace is closed. Without one, a
        private workspace is used and ``list_path`` is ``None``.

        Raises:
            SelectionFailed: when any pass fails; no partial result is kept.
            ConfigurationError: when an argfile vanished before a query.
        """

        if workspace is None:
            with selection_workspace() as scratch:
                result = self.select(criteria, scratch)
            return replace(result, list_path=None)

        counts = {PASS_EMBEDDED: 0, PASS_SIDECAR: 0, PASS_INCLUDED_SIDECARS: 0}
        try:
            with workspace.combined.open("wb") as handle:
                for label, path in self.iter_candidates(criteria):
                    if b"\0" in path:
                        raise ValueError(f"evaluator returned a path containing NUL: {path!r}")
                    handle.write(path + b"\0")
                    counts[label] += 1
        except ConfigurationError:
            raise
        except (XmpSelectError, OSError, ValueError) as exc:
            raise SelectionFailed(exc) from exc

        logger.debug(
            "Pass counts: embedded=%d sidecar=%d include-sidecars=%d",
            counts[PASS_EMBEDDED],
            counts[PASS_SIDECAR],
            counts[PASS_INCLUDED_SIDECARS],
        )

        paths = sort_unique(workspace.combined.read_bytes().split(b"\0"))
        workspace.selected.write_bytes(b"".join(path + b"\0" for path in paths))
        logger.info("Selected files: %d", len(paths))
        return SelectionResult(paths=tuple(paths), list_path=workspace.selected, counts=counts)
