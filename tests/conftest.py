from __future__ import annotations

import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.helpers.fakes import FakeEvaluator, RecordingRunner, make_tree


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click runner configured for CLI smoke tests."""

    return CliRunner()


@pytest.fixture
def photo_root(tmp_path: Path) -> Path:
    """A small library: one embedded match, one sidecar pair, one orphan sidecar."""

    root = tmp_path / "photos"
    root.mkdir()
    return make_tree(root, ["a.jpg", "b.tif", "b.xmp", "c.xmp", "d.jpg"])


@pytest.fixture
def fake_evaluator() -> type[FakeEvaluator]:
    return FakeEvaluator


@pytest.fixture
def recording_runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers the CLI installs so tests do not leak log output."""

    yield
    logger = logging.getLogger("src.xmp_select")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
