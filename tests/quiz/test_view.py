from __future__ import annotations

import pytest

from fixtures import make_question

from drill_deck.quiz.engine import QuizEngine
from drill_deck.quiz.models import QuestionLayout, QuizMode, SessionStatus
from drill_deck.quiz.view import app as qv


class StubStatic:
    def __init__(self, text: str = "", id: str | None = None, **_):
        self.text = text
        self.id = id

    def update(self, new: str) -> None:
        self.text = new


def _timed_app(manual_scheduler, count: int = 2) -> qv.QuizApp:
    engine = QuizEngine(
        [make_question(f"q{i}") for i in range(count)],
        mode=QuizMode.TIMED,
        time_limit_minutes=1,
    )
    app = qv.QuizApp(engine, theme="light")
    app.start_session(manual_scheduler)
    return app


def test_compose_empty_bank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(qv, "Static", StubStatic)
    app = qv.QuizApp(QuizEngine([]))

    rendered = list(app.compose())
    app._update_stage()

    assert rendered[0].text == "No questions."


def test_learning_helpers_drive_the_engine() -> None:
    engine = QuizEngine([make_question("q0"), make_question("q1")])
    app = qv.QuizApp(engine)
    app.start_session()

    assert app.select_answer("B") is True
    assert app.select_answer("a") is False
    assert app.next_question() == 1
    assert app.select_answer("a", "q1") is True
    assert app.prev_question() == 0
    assert app.answered_count() == 2
    assert app.clear_current() is False

    summary = app.submit()
    assert summary is not None
    assert summary.correct == 1
    assert app.final_summary is summary


def test_timed_submit_needs_a_second_press(manual_scheduler) -> None:
    app = _timed_app(manual_scheduler)
    app.select_answer("a")

    assert app.submit() is None
    assert app.engine.is_running
    summary = app.submit()
    assert summary is not None
    assert summary.skipped == 1
    assert app.engine.status is SessionStatus.FINISHED


def test_selecting_resets_the_pending_confirmation(manual_scheduler) -> None:
    app = _timed_app(manual_scheduler)

    assert app.submit() is None
    app.select_answer("b")
    assert app.submit() is None
    assert app.engine.is_running


def test_clear_current_in_timed_mode(manual_scheduler) -> None:
    app = _timed_app(manual_scheduler)
    app.select_answer("c")

    assert app.clear_current() is True
    assert app.answered_count() == 0


def test_countdown_finishes_through_the_scheduler(manual_scheduler) -> None:
    app = _timed_app(manual_scheduler)

    manual_scheduler.fire(60)

    assert app.engine.summary is not None
    assert app.engine.summary.timing.elapsed_seconds == 60
    assert manual_scheduler.active == []


def test_clock_and_answered_text(manual_scheduler) -> None:
    app = _timed_app(manual_scheduler)
    manual_scheduler.fire(5)
    app.select_answer("a")

    assert app._clock_text() == "00:55"
    assert app._answered_text() == "Answered: 1/2"
    assert qv.QuizApp(QuizEngine([make_question("q0")]))._clock_text() == ""


def test_list_layout_builds_a_view_per_question() -> None:
    engine = QuizEngine(
        [make_question(f"q{i}") for i in range(3)],
        layout=QuestionLayout.LIST,
    )
    app = qv.QuizApp(engine)
    app.start_session()
    app.select_answer("a", "q1")

    views = app._question_views()

    assert [view.position for view in views] == [0, 1, 2]
    assert [view.interactive for view in views] == [True, False, True]


def test_question_view_feedback_and_classes() -> None:
    engine = QuizEngine([make_question("q0", explanation="Alpha.")])
    engine.launch()
    question = engine.questions[0]

    fresh = qv.QuestionView(question, 0, 1, engine=engine)
    assert fresh.feedback_text() == ""
    assert fresh.choice_class("a") is None

    engine.select_answer("q0", "b")
    revealed = qv.QuestionView(
        question, 0, 1, selected="b", interactive=False, engine=engine
    )
    assert revealed.feedback_text() == "Incorrect. Alpha."
    assert revealed.choice_class("a") == "correct"
    assert revealed.choice_class("b") == "incorrect"
    assert revealed.choice_class("c") is None


def test_question_view_marks_timed_selection(manual_scheduler) -> None:
    app = _timed_app(manual_scheduler)
    app.select_answer("b")

    (view,) = app._question_views()

    assert view.selected == "b"
    assert view.choice_class("b") == "selected"
    assert view.feedback_text() == "Selected: B"
