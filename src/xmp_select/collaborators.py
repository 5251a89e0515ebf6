"""Hand a selection result to GNU find or rsync."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from src.datatypes import FindConfig, RsyncConfig

from .engine import SelectionResult, relative_to_root
from .errors import CollaboratorUnavailable, ConfigurationError
from .subproc import format_argv, run_checked

logger = logging.getLogger(__name__)

Which = Callable[[str], Optional[str]]

__all__ = [
    "FindAction",
    "RsyncAction",
    "detect_gnu_find",
    "split_passthrough",
]


def split_passthrough(chunks: Sequence[str]) -> list[str]:
    """Split each passthrough string shell-style and concatenate the pieces."""

    args: list[str] = []
    for chunk in chunks:
        try:
            args.extend(shlex.split(chunk))
        except ValueError as exc:
            raise ConfigurationError(f"Cannot parse passthrough arguments {chunk!r}: {exc}") from exc
    return args


def detect_gnu_find(binary: str = "find", *, which: Optional[Which] = None) -> bool:
    """Return ``True`` when *binary* is GNU find (needed for ``-files0-from``)."""

    if (which or shutil.which)(binary) is None:
        return False
    try:
        completed = run_checked([binary, "--version"])
    except OSError:
        return False
    if completed.returncode != 0:
        return False
    return b"gnu findutils" in (completed.stdout or b"").lower()


def _require_list(result: SelectionResult) -> Path:
    if result.list_path is None:
        raise ValueError("selection result has no list file; select() inside a workspace")
    return result.list_path


@dataclass
class FindAction:
    """``find -files0-from LIST [args...]`` over the selected set."""

    config: FindConfig
    root: Path
    args: list[str] = field(default_factory=list)
    available: bool = False

    @classmethod
    def detect(
        cls,
        config: FindConfig,
        root: Path,
        find_args: Sequence[str] = (),
        *,
        which: Optional[Which] = None,
    ) -> "FindAction":
        return cls(
            config=config,
            root=root,
            args=split_passthrough(find_args),
            available=detect_gnu_find(config.bin, which=which),
        )

    def argv(self, list_path: Path) -> list[str]:
        extra = self.args or ["-print"]
        return [self.config.bin, "-files0-from", str(list_path), *extra]

    def run(self, result: SelectionResult) -> int:
        """Run find and return its exit status."""

        if not self.available:
            raise CollaboratorUnavailable("find", "GNU findutils not detected")
        argv = self.argv(_require_list(result))
        logger.debug("find command: %s", format_argv(argv))
        completed = run_checked(argv, cwd=self.root, stdout=None, stderr=None)
        return completed.returncode


@dataclass
class RsyncAction:
    """``rsync --from0 --files-from=LIST SRC/ DEST/`` over the selected set."""

    config: RsyncConfig
    source: Path
    dest: Path
    args: list[str] = field(default_factory=list)
    available: bool = False

    @classmethod
    def detect(
        cls,
        config: RsyncConfig,
        source: Path,
        dest: Path,
        rsync_args: Sequence[str] = (),
        *,
        which: Optional[Which] = None,
    ) -> "RsyncAction":
        return cls(
            config=config,
            source=source,
            dest=dest,
            args=split_passthrough(rsync_args),
            available=(which or shutil.which)(config.bin) is not None,
        )

    def argv(self, list_path: Path) -> list[str]:
        return [
            self.config.bin,
            *self.config.base_args,
            "--from0",
            f"--files-from={list_path}",
            *self.args,
            f"{str(self.source).rstrip(os.sep)}/",
            f"{str(self.dest).rstrip(os.sep)}/",
        ]

    def write_relative_list(self, result: SelectionResult, target: Path) -> int:
        """rsync reads --files-from entries relative to SRC."""

        root = os.fsencode(self.source)
        with target.open("wb") as handle:
            for path in result:
                handle.write(relative_to_root(path, root) + b"\0")
        return len(result)

    def prepare(self) -> None:
        if not self.source.is_dir():
            raise ConfigurationError(f"SRC directory does not exist: {self.source}")
        try:
            self.dest.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(f"Cannot create DEST directory: {self.dest}") from exc

    def run(self, result: SelectionResult) -> int:
        """Sync the selected files and return rsync's exit status."""

        if not self.available:
            raise CollaboratorUnavailable("rsync", f"{self.config.bin} not found")
        list_path = _require_list(result).with_name("sync.nul")
        self.prepare()
        self.write_relative_list(result, list_path)
        argv = self.argv(list_path)
        logger.debug("rsync command: %s", format_argv(argv))
        completed = run_checked(argv, stdout=None, stderr=None)
        return completed.returncode
