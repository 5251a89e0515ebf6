"""
Helpers for invoking the external collaborators (exiftool, find, rsync).

`run_checked` wraps `subprocess.run` so callers get predictable defaults:
argv lists only, `shell=False`, bytes on stdout (paths are opaque byte
strings), decoded stderr for diagnostics, and stdin closed.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Sequence
from typing import IO, Any

logger = logging.getLogger(__name__)

StdIO = int | IO[Any] | None

Arg = str | bytes | os.PathLike[str] | os.PathLike[bytes]
Argv = Sequence[Arg]
PathLikeStr = os.PathLike[str]


def format_argv(argv: Argv) -> str:
    """Return *argv* as a shell-quoted string for debug logs."""

    return " ".join(shlex.quote(os.fsdecode(part)) for part in argv)


def run_checked(
    argv: Argv,
    *,
    cwd: str | PathLikeStr | None = None,
    stdout: StdIO = subprocess.PIPE,
    stderr: StdIO = subprocess.PIPE,
) -> subprocess.CompletedProcess[bytes]:
    """
    Run *argv* and wait for it to exit.

    The child's exit status is returned untouched; callers decide which codes
    are fatal.

    Raises:
        ValueError: if *argv* is empty.
        TypeError: if *argv* is a plain string.
        FileNotFoundError: when the executable does not exist.
    """

    if not argv:
        raise ValueError("run_checked requires at least one argv entry.")
    if isinstance(argv, (str, bytes)):
        raise TypeError("run_checked expects a sequence of arguments, not a string.")

    command: list[str | bytes] = [os.fspath(part) for part in argv]
    logger.debug("exec: %s", format_argv(command))
    return subprocess.run(
        command,
        stdin=subprocess.DEVNULL,
        stdout=stdout,
        stderr=stderr,
        cwd=cwd,
        shell=False,
        check=False,
    )


def probe(argv: Argv) -> bool:
    """Return ``True`` when *argv* runs and exits zero; output is discarded."""

    try:
        completed = run_checked(argv, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError:
        return False
    return completed.returncode == 0


def decode_stderr(completed: subprocess.CompletedProcess[bytes]) -> str:
    raw = completed.stderr or b""
    return raw.decode("utf-8", errors="replace")


__all__ = ["run_checked", "probe", "format_argv", "decode_stderr"]
