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

from fixtures import FakeHttp, ManualScheduler, ScriptedRandom  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Point the workspace at tmp and drop any DRILL_QUIZ_* overrides."""

    for key in list(os.environ):
        if key.startswith("DRILL_QUIZ_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DRILL_DECK_DATA_HOME", str(tmp_path / "workspace"))
    yield
    logger = logging.getLogger("drill_deck.quiz")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def scripted_rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()
