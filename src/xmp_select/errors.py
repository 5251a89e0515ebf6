"""Error types raised by xmp-select, each carrying its CLI exit code."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "XmpSelectError",
    "ConfigurationError",
    "EmptyExtensionSpec",
    "ArgFileNotFound",
    "EvaluatorUnavailable",
    "EvaluatorNotFound",
    "EvaluatorFailed",
    "SelectionFailed",
    "CollaboratorUnavailable",
    "PerFileRenderError",
]


class XmpSelectError(RuntimeError):
    """Base class for errors surfaced to the CLI."""

    code: int = 1

    def __init__(self, message: str, *, code: Optional[int] = None, rich_message: Optional[str] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.rich_message = rich_message or message


class ConfigurationError(XmpSelectError):
    """Caller input is unusable; raised before any external process runs."""

    code = 2


class EmptyExtensionSpec(ConfigurationError):
    """The extension list resolved to nothing."""


class ArgFileNotFound(ConfigurationError):
    """An ExifTool argfile reference does not exist."""

    def __init__(self, path: object) -> None:
        super().__init__(f"argfile not found: {path}")
        self.path = path


class EvaluatorUnavailable(XmpSelectError):
    """The metadata evaluator cannot be used at all."""

    code = 3


class EvaluatorNotFound(EvaluatorUnavailable):
    def __init__(self, binary: str) -> None:
        super().__init__(f"{binary} not found")
        self.binary = binary


class EvaluatorFailed(XmpSelectError):
    """An evaluator invocation exited with an unexpected status."""

    code = 4

    def __init__(self, argv: list[str], returncode: int, stderr: str = "") -> None:
        detail = stderr.strip().splitlines()[0] if stderr.strip() else "no diagnostic output"
        super().__init__(f"{argv[0]} exited {returncode}: {detail}")
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr


class SelectionFailed(XmpSelectError):
    """A selection pass failed; no partial result is available."""

    code = 4

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"selection failed: {cause}")
        self.cause = cause
        cause_code = getattr(cause, "code", None)
        if isinstance(cause_code, int):
            self.code = cause_code


class CollaboratorUnavailable(XmpSelectError):
    """find/rsync is missing or unsuitable; callers degrade to the raw list."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"{name} unavailable: {reason}")
        self.name = name
        self.reason = reason


class PerFileRenderError(XmpSelectError):
    """Formatted printing failed for one file."""

    def __init__(self, path: bytes, cause: BaseException) -> None:
        super().__init__(f"cannot render {path!r}: {cause}")
        self.path = path
        self.cause = cause
