"""Shared test doubles for the drill-deck test suite."""

from .http import FakeHttp, FakeResponse  # noqa: F401
from .quiz import (  # noqa: F401
    ManualScheduler,
    ScriptedRandom,
    make_question,
    sheet_index_html,
)

__all__ = [
    "FakeHttp",
    "FakeResponse",
    "ManualScheduler",
    "ScriptedRandom",
    "make_question",
    "sheet_index_html",
]
