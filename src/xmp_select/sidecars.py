"""Sidecar <-> primary association by suffix stripping and extension probing."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Optional

logger = logging.getLogger(__name__)

FileTest = Callable[[bytes], bool]

__all__ = [
    "strip_sidecar_suffix",
    "sidecar_for",
    "map_sidecars",
    "map_sidecar_pairs",
    "existing_sidecars",
]


def _resolve(root: Optional[bytes], path: bytes) -> bytes:
    if root is None:
        return path
    return os.path.join(root, path)


def strip_sidecar_suffix(path: bytes, sidecar_extension: str = "xmp") -> Optional[bytes]:
    """Return *path* without its trailing ``.xmp`` (any case), or ``None`` when absent."""

    suffix = b"." + os.fsencode(sidecar_extension.lower())
    if len(path) <= len(suffix) or not path.lower().endswith(suffix):
        return None
    return path[: -len(suffix)]


def sidecar_for(primary: bytes, sidecar_extension: str = "xmp") -> bytes:
    """Replace the final extension of *primary* with the sidecar extension."""

    base, _ext = os.path.splitext(primary)
    return base + b"." + os.fsencode(sidecar_extension)


def map_sidecar_pairs(
    sidecars: Iterable[bytes],
    probe_list: Sequence[str],
    *,
    root: Optional[bytes] = None,
    sidecar_extension: str = "xmp",
    is_file: FileTest = os.path.isfile,
) -> Iterator[tuple[bytes, bytes]]:
    """
    Yield ``(sidecar, primary)`` for each sidecar path that has a primary.

    Extensions are probed in *probe_list* order and the first existing
    ``base.ext`` wins. A sidecar whose base name has no primary on disk yields
    nothing. Relative paths are tested against *root*.
    """

    encoded = [os.fsencode(ext) for ext in probe_list]
    for sidecar in sidecars:
        base = strip_sidecar_suffix(sidecar, sidecar_extension)
        if base is None:
            logger.debug("Ignoring non-sidecar path from sidecar query: %r", sidecar)
            continue
        for ext in encoded:
            candidate = base + b"." + ext
            if is_file(_resolve(root, candidate)):
                yield sidecar, candidate
                break
        else:
            logger.debug("No primary for sidecar %s", os.fsdecode(sidecar))


def map_sidecars(
    sidecars: Iterable[bytes],
    probe_list: Sequence[str],
    *,
    root: Optional[bytes] = None,
    sidecar_extension: str = "xmp",
    is_file: FileTest = os.path.isfile,
) -> Iterator[bytes]:
    """Yield only the primary file of each mapped sidecar."""

    for _sidecar, primary in map_sidecar_pairs(
        sidecars, probe_list, root=root, sidecar_extension=sidecar_extension, is_file=is_file
    ):
        yield primary


def existing_sidecars(
    primaries: Iterable[bytes],
    *,
    root: Optional[bytes] = None,
    sidecar_extension: str = "xmp",
    is_file: FileTest = os.path.isfile,
) -> Iterator[bytes]:
    """Yield the sidecar of each primary that has one on disk."""

    for primary in primaries:
        candidate = sidecar_for(primary, sidecar_extension)
        if candidate != primary and is_file(_resolve(root, candidate)):
            yield candidate
