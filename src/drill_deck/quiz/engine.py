"""Session engine shared by every quiz front end.

One :class:`QuizEngine` owns the state of one session: the fixed question
order, the answer map, the cursor, the countdown and the final summary. The
mode decides the answer rules:

* learning: the first answer to a question is final and immediately
  revealed; there is no clock.
* timed: answers may be changed or cleared until the session ends, nothing
  is revealed early, and a countdown finalizes the session at zero.

The layout only changes which questions are interactive at once; scoring and
state transitions are identical for both layouts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Sequence

from .models import (
    AnswerMap,
    Question,
    QuestionLayout,
    QuizMode,
    SessionStatus,
    Summary,
    Timing,
)
from .summary import build_summary
from .ticker import Scheduler, TickHandle

__all__ = [
    "CORRECT_FALLBACK",
    "INCORRECT_FALLBACK",
    "Reveal",
    "QuizEngine",
]

CORRECT_FALLBACK = "Great work, you nailed it."
INCORRECT_FALLBACK = "Review your notes for this topic and try again."

TICK_SECONDS = 1.0


@dataclass(frozen=True)
class Reveal:
    """What a learner sees once a learning-mode answer is locked in."""

    question_id: str
    selected: str
    correct_option: str
    is_correct: bool
    message: str
    option_states: Mapping[str, str]


class QuizEngine:
    def __init__(
        self,
        questions: Sequence[Question],
        *,
        mode: QuizMode = QuizMode.LEARNING,
        layout: QuestionLayout = QuestionLayout.SINGLE,
        time_limit_minutes: Optional[int] = None,
        on_finish: Optional[Callable[[Summary], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        mode = QuizMode(mode)
        layout = QuestionLayout(layout)
        if mode is QuizMode.TIMED:
            if layout is QuestionLayout.LIST:
                raise ValueError(
                    "The list layout is only offered in learning mode."
                )
            if not time_limit_minutes or time_limit_minutes <= 0:
                raise ValueError("Timed mode needs a positive time limit.")
        self._questions = tuple(questions)
        self._by_id = {question.id: question for question in self._questions}
        self._mode = mode
        self._layout = layout
        self._time_limit_minutes = (
            int(time_limit_minutes) if mode is QuizMode.TIMED else None
        )
        self._on_finish = on_finish
        self._logger = logger or logging.getLogger(__name__)

        self._answers: AnswerMap = {}
        self._index = 0
        self._status = SessionStatus.NOT_STARTED
        self._remaining = self.limit_seconds
        self._tick_handle: Optional[TickHandle] = None
        self._summary: Optional[Summary] = None

    # -- read-only state ---------------------------------------------------

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def mode(self) -> QuizMode:
        return self._mode

    @property
    def layout(self) -> QuestionLayout:
        return self._layout

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def answers(self) -> Mapping[str, str]:
        return MappingProxyType(self._answers)

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current(self) -> Optional[Question]:
        if not self._questions:
            return None
        return self._questions[self._index]

    @property
    def limit_seconds(self) -> Optional[int]:
        if self._time_limit_minutes is None:
            return None
        return self._time_limit_minutes * 60

    @property
    def time_remaining_seconds(self) -> Optional[int]:
        return self._remaining

    @property
    def summary(self) -> Optional[Summary]:
        return self._summary

    @property
    def is_running(self) -> bool:
        return self._status is SessionStatus.RUNNING

    def answered_count(self) -> int:
        return len(self._answers)

    def unanswered_count(self) -> int:
        return self.total - len(self._answers)

    def selected_for(self, question_id: str) -> Optional[str]:
        return self._answers.get(question_id)

    def is_revealed(self, question_id: str) -> bool:
        """Learning-mode answers are revealed (and locked) once recorded."""

        return self._mode is QuizMode.LEARNING and question_id in self._answers

    def is_interactive(self, question_id: str) -> bool:
        if not self.is_running or question_id not in self._by_id:
            return False
        if self.is_revealed(question_id):
            return False
        if self._layout is QuestionLayout.LIST:
            return True
        current = self.current
        return current is not None and current.id == question_id

    def interactive_questions(self) -> tuple[Question, ...]:
        return tuple(
            question
            for question in self._questions
            if self.is_interactive(question.id)
        )

    def reveal(self, question_id: str) -> Optional[Reveal]:
        if not self.is_revealed(question_id):
            return None
        question = self._by_id[question_id]
        selected = self._answers[question_id]
        is_correct = question.is_correct(selected)
        fallback = CORRECT_FALLBACK if is_correct else INCORRECT_FALLBACK
        states = {}
        for option in question.options:
            if option.id == question.correct_option:
                states[option.id] = "correct"
            elif option.id == selected:
                states[option.id] = "incorrect"
            else:
                states[option.id] = "neutral"
        return Reveal(
            question_id=question_id,
            selected=selected,
            correct_option=question.correct_option,
            is_correct=is_correct,
            message=question.explanation or fallback,
            option_states=MappingProxyType(states),
        )

    # -- lifecycle ---------------------------------------------------------

    def launch(self, scheduler: Optional[Scheduler] = None) -> None:
        """Start the session; timed sessions register a one-second tick.

        Without a ``scheduler`` the caller is responsible for invoking
        :meth:`tick` once per second.
        """

        if self._status is not SessionStatus.NOT_STARTED:
            return
        self._status = SessionStatus.RUNNING
        if self._mode is QuizMode.TIMED and scheduler is not None:
            self._tick_handle = scheduler(TICK_SECONDS, self.tick)
        self._logger.debug(
            "Quiz session launched",
            extra={
                "mode": self._mode.value,
                "layout": self._layout.value,
                "question_count": self.total,
                "limit_seconds": self.limit_seconds,
            },
        )

    def tick(self) -> None:
        if self._mode is not QuizMode.TIMED or not self.is_running:
            return
        if self._remaining is None:
            raise RuntimeError("Timed session has no clock to tick.")
        self._remaining = max(self._remaining - 1, 0)
        if self._remaining == 0:
            self.finalize(auto=True)

    def finalize(self, auto: bool = False) -> Summary:
        """End the session and score it.

        ``auto`` marks the timer-expiry path, which records the full limit as
        the elapsed time. Finalizing twice returns the first summary.
        """

        if self._summary is not None:
            return self._summary
        self._release_timer()
        self._status = SessionStatus.FINISHED

        timing = None
        limit = self.limit_seconds
        if limit is not None:
            remaining = self._remaining or 0
            elapsed = limit if auto else limit - remaining
            timing = Timing(elapsed_seconds=elapsed, limit_seconds=limit)

        self._summary = build_summary(
            self._questions,
            dict(self._answers),
            mode=self._mode,
            timing=timing,
        )
        self._logger.info(
            "Quiz session finished",
            extra={
                "mode": self._mode.value,
                "auto": auto,
                "total": self._summary.total,
                "correct": self._summary.correct,
                "skipped": self._summary.skipped,
            },
        )
        if self._on_finish is not None:
            self._on_finish(self._summary)
        return self._summary

    def close(self) -> None:
        """Abandon the session. Only the countdown needs releasing."""

        self._release_timer()
        if self._status is not SessionStatus.FINISHED:
            self._status = SessionStatus.FINISHED
            self._logger.info(
                "Quiz session aborted",
                extra={"answered": self.answered_count(), "total": self.total},
            )

    def retake(self) -> "QuizEngine":
        """Return a fresh engine over the same questions in the same order."""

        self._release_timer()
        return QuizEngine(
            self._questions,
            mode=self._mode,
            layout=self._layout,
            time_limit_minutes=self._time_limit_minutes,
            on_finish=self._on_finish,
            logger=self._logger,
        )

    def __enter__(self) -> "QuizEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    # -- answers and navigation --------------------------------------------

    def select_answer(self, question_id: str, option_id: str) -> bool:
        """Record ``option_id`` for ``question_id``.

        Returns ``False`` when nothing changed: the session is not running,
        the ids are unknown, or a learning-mode answer is already locked in.
        """

        if not self.is_running:
            return False
        question = self._by_id.get(question_id)
        if question is None or question.option(option_id) is None:
            return False
        if self._mode is QuizMode.LEARNING and question_id in self._answers:
            return False
        self._answers[question_id] = option_id
        return True

    def select_current(self, option_id: str) -> bool:
        current = self.current
        if current is None:
            return False
        return self.select_answer(current.id, option_id)

    def clear_answer(self, question_id: str) -> bool:
        if self._mode is not QuizMode.TIMED or not self.is_running:
            return False
        return self._answers.pop(question_id, None) is not None

    def advance(self) -> int:
        if self._index + 1 < self.total:
            self._index += 1
        return self._index

    def retreat(self) -> int:
        if self._index > 0:
            self._index -= 1
        return self._index

    def go_to(self, index: int) -> int:
        if 0 <= index < self.total:
            self._index = index
        return self._index

    def _release_timer(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.stop()
            self._tick_handle = None
