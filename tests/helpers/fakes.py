"""Scripted stand-ins for ExifTool and the subprocess layer."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from src.xmp_select.criteria import SelectionCriteria
from src.xmp_select.errors import EvaluatorFailed


class FakeEvaluator:
    """
    Answers queries from a script keyed by the extension list.

    Query answers are root-relative; they are returned joined to the
    criteria root the way ExifTool prints ``$FilePath``.
    """

    def __init__(
        self,
        answers: Optional[dict[tuple[str, ...], list[str]]] = None,
        *,
        tags: Optional[dict[tuple[str, str], str]] = None,
        fail_on: Optional[tuple[str, ...]] = None,
        render_fail: Sequence[str] = (),
    ) -> None:
        self.answers = answers or {}
        self.tags = tags or {}
        self.fail_on = fail_on
        self.render_fail = set(render_fail)
        self.queries: list[tuple[str, ...]] = []
        self.tag_reads: list[tuple[bytes, str]] = []
        self.renders: list[tuple[bytes, str]] = []

    def query(
        self,
        criteria: SelectionCriteria,
        extensions: Sequence[str],
        extra_flags: Sequence[str] = (),
    ) -> Iterator[bytes]:
        key = tuple(extensions)
        self.queries.append(key)
        if self.fail_on is not None and key == self.fail_on:
            raise EvaluatorFailed(["exiftool"], 1, "Error: boom")
        for rel in self.answers.get(key, []):
            yield os.path.join(criteria.root_bytes, os.fsencode(rel))

    def read_tag(self, path: bytes, tag: str, *, cwd: Optional[Path] = None) -> Optional[str]:
        self.tag_reads.append((path, tag))
        return self.tags.get((os.fsdecode(path), tag))

    def render(self, path: bytes, template: str, *, cwd: Optional[Path] = None) -> bytes:
        self.renders.append((path, template))
        if os.fsdecode(path) in self.render_fail:
            raise EvaluatorFailed(["exiftool", "-p", template], 1, "Error: unreadable")
        return template.replace("$$", "$").encode() + b"\n"


def make_tree(root: Path, names: Sequence[str]) -> Path:
    """Create empty files (and parent directories) under *root*."""

    for name in names:
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"")
    return root


@dataclass
class RecordingRunner:
    """Replacement for ``run_checked`` that records argv and replays results."""

    responses: list[tuple[int, bytes, bytes]] = field(default_factory=list)
    default: tuple[int, bytes, bytes] = (0, b"", b"")
    handler: Optional[Callable[[list[Any]], tuple[int, bytes, bytes]]] = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    def __call__(self, argv: Sequence[Any], **kwargs: Any) -> subprocess.CompletedProcess[bytes]:
        command = [os.fsdecode(os.fspath(part)) for part in argv]
        self.calls.append({"argv": command, **kwargs})
        if self.handler is not None:
            code, out, err = self.handler(command)
        elif self.responses:
            code, out, err = self.responses.pop(0)
        else:
            code, out, err = self.default
        return subprocess.CompletedProcess(command, code, out, err)

    @property
    def argvs(self) -> list[list[str]]:
        return [call["argv"] for call in self.calls]
