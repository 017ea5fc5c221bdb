"""Data structures shared by the normalizer, session engine and summary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class QuizMode(str, Enum):
    """Practice with instant feedback, or a timed exam simulation."""

    LEARNING = "learning"
    TIMED = "timed"

    @classmethod
    def from_value(cls, value: str) -> "QuizMode":
        return cls(value.strip().lower())


class QuestionLayout(str, Enum):
    """How many questions are interactive at once."""

    SINGLE = "single"
    LIST = "list"

    @classmethod
    def from_value(cls, value: str) -> "QuestionLayout":
        return cls(value.strip().lower())


class SessionStatus(str, Enum):
    NOT_STARTED = "not-started"
    RUNNING = "running"
    FINISHED = "finished"


# Question id -> selected option id. Unanswered questions have no entry.
AnswerMap = Dict[str, str]


@dataclass(frozen=True)
class Option:
    id: str
    label: str


@dataclass(frozen=True)
class Question:
    """Canonical multiple-choice question, immutable once loaded."""

    id: str
    module: str
    submodule: str
    prompt: str
    options: tuple[Option, ...]
    correct_option: str
    explanation: Optional[str] = None
    difficulty: Optional[str] = None
    # Distinct, in first-seen order.
    tags: tuple[str, ...] = ()

    def option(self, option_id: Optional[str]) -> Optional[Option]:
        if not option_id:
            return None
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    @property
    def correct(self) -> Option:
        option = self.option(self.correct_option)
        if option is None:  # pragma: no cover - normalizer guarantees this
            raise LookupError(
                f"Question {self.id} has no option '{self.correct_option}'."
            )
        return option

    def is_correct(self, option_id: Optional[str]) -> bool:
        return bool(option_id) and option_id == self.correct_option


@dataclass(frozen=True)
class GroupStat:
    """Accuracy for one submodule or tag group."""

    label: str
    correct: int
    total: int
    module: Optional[str] = None
    submodule: Optional[str] = None

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    prompt: str
    module: str
    submodule: str
    tags: tuple[str, ...]
    selected: Optional[str]
    selected_label: Optional[str]
    correct_answer: str
    correct_label: str
    was_correct: bool
    difficulty: Optional[str] = None
    explanation: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.selected is None


@dataclass(frozen=True)
class Timing:
    elapsed_seconds: int
    limit_seconds: Optional[int] = None


@dataclass(frozen=True)
class Summary:
    """Read-only snapshot of a finished session."""

    mode: QuizMode
    total: int
    correct: int
    incorrect: int
    skipped: int
    accuracy: float
    strengths: tuple[str, ...]
    focus: tuple[str, ...]
    by_submodule: tuple[GroupStat, ...]
    by_tag: tuple[GroupStat, ...]
    questions: tuple[QuestionResult, ...]
    timing: Optional[Timing] = None

    @property
    def answered(self) -> int:
        return self.total - self.skipped
