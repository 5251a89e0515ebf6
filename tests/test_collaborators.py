from __future__ import annotations

from pathlib import Path

import pytest

import src.xmp_select.collaborators as collaborators
from src.datatypes import FindConfig, RsyncConfig
from src.xmp_select.collaborators import FindAction, RsyncAction, detect_gnu_find, split_passthrough
from src.xmp_select.engine import SelectionResult
from src.xmp_select.errors import CollaboratorUnavailable, ConfigurationError
from tests.helpers.fakes import RecordingRunner


def _which_all(name: str) -> str:
    return f"/usr/bin/{name}"


def test_split_passthrough_keeps_order() -> None:
    assert split_passthrough(["-newer 'ref file'", "-print"]) == ["-newer", "ref file", "-print"]


def test_split_passthrough_rejects_unbalanced_quotes() -> None:
    with pytest.raises(ConfigurationError):
        split_passthrough(["-name 'oops"])


@pytest.mark.parametrize(
    ("stdout", "expected"),
    [
        (b"find (GNU findutils) 4.9.0\n", True),
        (b"", False),
    ],
)
def test_detect_gnu_find(monkeypatch: pytest.MonkeyPatch, stdout: bytes, expected: bool) -> None:
    monkeypatch.setattr(collaborators, "run_checked", RecordingRunner(default=(0, stdout, b"")))
    assert detect_gnu_find("find", which=_which_all) is expected


def test_detect_gnu_find_bsd_usage_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(collaborators, "run_checked", RecordingRunner(default=(1, b"", b"find: illegal option -- -\n")))
    assert detect_gnu_find("find", which=_which_all) is False


def test_detect_gnu_find_missing_binary() -> None:
    assert detect_gnu_find("find", which=lambda _name: None) is False


def test_find_action_runs_with_list_and_default_print(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    runner = RecordingRunner(responses=[(0, b"GNU findutils", b""), (0, b"", b"")])
    monkeypatch.setattr(collaborators, "run_checked", runner)
    list_path = tmp_path / "selected.nul"
    result = SelectionResult(paths=(b"/r/a.jpg",), list_path=list_path)

    action = FindAction.detect(FindConfig(), tmp_path, which=_which_all)
    status = action.run(result)

    assert status == 0
    assert runner.argvs[1] == ["find", "-files0-from", str(list_path), "-print"]
    assert runner.calls[1]["cwd"] == tmp_path
    assert runner.calls[1]["stdout"] is None


def test_find_action_passes_extra_args(tmp_path: Path) -> None:
    action = FindAction(FindConfig(), tmp_path, args=split_passthrough(["-size +1M -ls"]), available=True)
    assert action.argv(Path("/t/list.nul")) == ["find", "-files0-from", "/t/list.nul", "-size", "+1M", "-ls"]


def test_find_action_unavailable_raises(tmp_path: Path) -> None:
    action = FindAction(FindConfig(), tmp_path, available=False)
    with pytest.raises(CollaboratorUnavailable):
        action.run(SelectionResult(paths=(), list_path=tmp_path / "selected.nul"))


def test_rsync_argv_shape(tmp_path: Path) -> None:
    action = RsyncAction(
        RsyncConfig(),
        Path("/src/photos/"),
        Path("/backup"),
        args=split_passthrough(["--dry-run"]),
        available=True,
    )
    assert action.argv(Path("/t/sync.nul")) == [
        "rsync",
        "-av",
        "--from0",
        "--files-from=/t/sync.nul",
        "--dry-run",
        "/src/photos/",
        "/backup/",
    ]


def test_rsync_run_writes_relative_list_and_creates_dest(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    runner = RecordingRunner()
    monkeypatch.setattr(collaborators, "run_checked", runner)
    source = tmp_path / "src"
    source.mkdir()
    dest = tmp_path / "out" / "nested"
    work = tmp_path / "work"
    work.mkdir()
    result = SelectionResult(
        paths=(bytes(source / "a.jpg"), bytes(source / "sub" / "b.tif")),
        list_path=work / "selected.nul",
    )

    action = RsyncAction.detect(RsyncConfig(), source, dest, which=_which_all)
    status = action.run(result)

    assert status == 0
    assert dest.is_dir()
    assert (work / "sync.nul").read_bytes() == b"a.jpg\0sub/b.tif\0"
    assert runner.argvs[0][-2:] == [f"{source}/", f"{dest}/"]


def test_rsync_missing_source_is_configuration_error(tmp_path: Path) -> None:
    action = RsyncAction(RsyncConfig(), tmp_path / "missing", tmp_path / "dest", available=True)
    with pytest.raises(ConfigurationError):
        action.run(SelectionResult(paths=(), list_path=tmp_path / "selected.nul"))


def test_rsync_unavailable(tmp_path: Path) -> None:
    action = RsyncAction.detect(RsyncConfig(), tmp_path, tmp_path / "dest", which=lambda _name: None)
    assert action.available is False
    with pytest.raises(CollaboratorUnavailable):
        action.run(SelectionResult(paths=(), list_path=tmp_path / "selected.nul"))
