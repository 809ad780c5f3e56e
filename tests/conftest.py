from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import ManualTimerFactory, WorkspaceBuilder  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[Path]:
    """Point the workspace at tmp and drop any CLASSROOM_QUIZ_* settings."""

    for key in list(os.environ):
        if key.startswith("CLASSROOM_QUIZ_"):
            monkeypatch.delenv(key, raising=False)
    home = tmp_path / "quiz-home"
    monkeypatch.setenv("CLASSROOM_QUIZ_HOME", str(home))
    yield home


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("classroom_quiz")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def timers() -> ManualTimerFactory:
    """Timer factory whose countdowns only move when a test advances them."""

    return ManualTimerFactory()
