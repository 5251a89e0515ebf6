"""ExifTool as the metadata evaluator behind a narrow query interface."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Optional, Protocol

from src.datatypes import ExifToolConfig

from .criteria import SelectionCriteria, check_argfiles
from .errors import EvaluatorFailed, EvaluatorNotFound
from .extensions import extension_filter_args
from .subproc import decode_stderr, format_argv, probe, run_checked

logger = logging.getLogger(__name__)

__all__ = [
    "MetadataEvaluator",
    "ExifToolEvaluator",
    "split_records",
    "FILE_PATH_TEMPLATE",
    "file_operand",
    "SCAN_FLAGS",
]

FILE_PATH_TEMPLATE = "$FilePath"
SCAN_FLAGS: tuple[str, ...] = ("-r", "-fast2", "-m", "-q", "-q")

# A recursive scan with no file of the requested -ext exits 1; -q -q hides
# the "No file with specified extension" warning, so only silence tells it
# apart from a real error.
_NO_FILE_EXIT = 1


def file_operand(path: bytes) -> bytes:
    """Return *path* in a form ExifTool cannot mistake for an option."""

    if os.path.isabs(path) or path.startswith(b"./"):
        return path
    return b"./" + path


class MetadataEvaluator(Protocol):
    def query(
        self,
        criteria: SelectionCriteria,
        extensions: Sequence[str],
        extra_flags: Sequence[str] = (),
    ) -> Iterator[bytes]: ...

    def read_tag(self, path: bytes, tag: str, *, cwd: Optional[Path] = None) -> Optional[str]: ...

    def render(self, path: bytes, template: str, *, cwd: Optional[Path] = None) -> bytes: ...


def split_records(data: bytes, *, nul: bool) -> Iterator[bytes]:
    """
    Split evaluator output into path records.

    With ``nul`` the output is NUL-delimited. Otherwise it is newline-delimited
    and each line becomes one record; a path that itself contains a newline
    is mis-split in that mode.
    """

    if nul:
        chunks = data.split(b"\0")
    else:
        chunks = data.split(b"\n")
    for chunk in chunks:
        if not nul and chunk.endswith(b"\r"):
            chunk = chunk[:-1]
        if chunk:
            yield chunk


class ExifToolEvaluator:
    """
    Runs ExifTool with a fixed scan option set.

    The native NUL-output capability is probed at most once per instance; the
    CLI builds one instance per invocation.
    """

    def __init__(
        self,
        config: ExifToolConfig,
        *,
        which: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        if (which or shutil.which)(config.bin) is None:
            raise EvaluatorNotFound(config.bin)
        self.config = config
        self.binary = config.bin
        self._nul_supported: Optional[bool] = None

    def supports_nul(self) -> bool:
        if self._nul_supported is None:
            self._nul_supported = probe([self.binary, "-0", "-ver"])
            if self._nul_supported:
                logger.debug("%s supports -0; using native NUL output", self.binary)
            else:
                logger.debug("%s lacks -0; transcoding newline output to NUL", self.binary)
        return self._nul_supported

    def _base_argv(self) -> list[str]:
        argv = [self.binary, *self.config.common_args]
        for argfile in self.config.argfiles:
            argv.extend(("-@", str(Path(argfile).expanduser())))
        return argv

    def build_query_args(
        self,
        criteria: SelectionCriteria,
        extensions: Sequence[str],
        extra_flags: Sequence[str] = (),
    ) -> list[str]:
        argv = self._base_argv()
        argv.extend(SCAN_FLAGS)
        argv.extend(extension_filter_args(list(extensions)))
        for argfile in criteria.argfiles:
            argv.extend(("-@", str(argfile)))
        if criteria.expression:
            argv.extend(("-if", criteria.expression))
        if self.supports_nul():
            argv.append("-0")
        argv.extend(extra_flags)
        argv.extend(("-p", FILE_PATH_TEMPLATE, "."))
        return argv

    def _run(self, argv: Sequence[str | bytes], cwd: Optional[Path]):
        try:
            return run_checked(argv, cwd=cwd)
        except FileNotFoundError as exc:
            raise EvaluatorNotFound(self.binary) from exc

    def query(
        self,
        criteria: SelectionCriteria,
        extensions: Sequence[str],
        extra_flags: Sequence[str] = (),
    ) -> Iterator[bytes]:
        """Yield matching paths for one scan of ``criteria.root``."""

        check_argfiles(Path(item).expanduser() for item in self.config.argfiles)
        check_argfiles(criteria.argfiles)
        argv = self.build_query_args(criteria, extensions, extra_flags)
        logger.debug("exiftool query: %s", format_argv(argv))
        completed = self._run(argv, criteria.root)
        if completed.returncode in self.config.no_match_exit_codes:
            logger.debug("exiftool reported no matching files (exit %d)", completed.returncode)
            return
        stderr = decode_stderr(completed)
        if completed.returncode == _NO_FILE_EXIT and not completed.stdout and not stderr.strip():
            logger.debug("exiftool found no file with extension %s", ",".join(extensions))
            return
        if completed.returncode != 0:
            raise EvaluatorFailed(list(argv), completed.returncode, stderr)
        yield from split_records(completed.stdout or b"", nul=self.supports_nul())

    def read_tag(self, path: bytes, tag: str, *, cwd: Optional[Path] = None) -> Optional[str]:
        """Return the printed value of *tag* in *path*, or ``None`` when it is absent."""

        argv: list[str | bytes] = [self.binary, "-s", "-s", "-s", f"-{tag}", file_operand(path)]
        completed = self._run(argv, cwd)
        if completed.returncode != 0:
            raise EvaluatorFailed([os.fsdecode(a) for a in argv], completed.returncode, decode_stderr(completed))
        value = (completed.stdout or b"").decode("utf-8", errors="replace").strip()
        return value or None

    def render(self, path: bytes, template: str, *, cwd: Optional[Path] = None) -> bytes:
        argv: list[str | bytes] = [self.binary, "-m", "-p", template, file_operand(path)]
        completed = self._run(argv, cwd)
        if completed.returncode != 0:
            raise EvaluatorFailed([os.fsdecode(a) for a in argv], completed.returncode, decode_stderr(completed))
        return completed.stdout or b""
