"""Extension list handling shared by the query filter and the sidecar probe."""

from __future__ import annotations

from typing import Final

from .errors import EmptyExtensionSpec

__all__ = ["DEFAULT_EXTENSIONS", "resolve_extensions", "extension_filter_args"]

DEFAULT_EXTENSIONS: Final[str] = "jpg,jpeg,tif,tiff,dng,cr2,cr3,nef,nrw,arw,raf,orf,rw2,heic,mp4,mov"


def resolve_extensions(spec: str) -> tuple[str, ...]:
    """
    Split a comma-separated extension spec into lower-case tokens.

    Order is kept (it is the probe priority for sidecar mapping) and duplicates
    are kept too; they only cost an extra existence check. Unknown tokens are
    passed through as-is.

    Raises:
        EmptyExtensionSpec: when no token remains.
    """

    tokens: list[str] = []
    for raw in (spec or "").split(","):
        token = raw.strip()
        if token.startswith("."):
            token = token[1:]
        if token:
            tokens.append(token.lower())
    if not tokens:
        raise EmptyExtensionSpec(f"extension list is empty: {spec!r}")
    return tuple(tokens)


def extension_filter_args(extensions: tuple[str, ...] | list[str]) -> list[str]:
    """Return ``-ext`` pairs for ExifTool."""

    args: list[str] = []
    for ext in extensions:
        args.extend(("-ext", ext))
    return args
