from __future__ import annotations

import logging
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_home(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Prevent developer machine `~/.ftt/config.json` and env flags from influencing tests."""

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("FTT_ROOT", raising=False)
    monkeypatch.delenv("FTT_DEBUG", raising=False)


@pytest.fixture
def project(tmp_path) -> Path:
    """A tracked root holding a.txt ("hello") and b.txt ("world")."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "a.txt").write_text("hello")
    (root / "b.txt").write_text("world")
    return root


@pytest.fixture(autouse=True)
def _reset_ftt_logger():
    """Drop handlers installed by `main()` so they never outlive a captured stream."""

    yield
    logger = logging.getLogger("ftt")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
