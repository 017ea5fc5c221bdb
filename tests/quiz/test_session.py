from __future__ import annotations

from rich.console import Console

from fixtures import make_question

from drill_deck.quiz.engine import QuizEngine
from drill_deck.quiz.models import QuestionLayout, QuizMode
from drill_deck.quiz.session import (
    SessionCommand,
    format_clock,
    parse_session_command,
    render_summary,
    run_quiz_session,
)
from drill_deck.quiz.ticker import ClockTicker


def make_provider(commands: list[str]):
    iterator = iter(commands)

    def _provider() -> str:
        return next(iterator)

    return _provider


def _console() -> Console:
    return Console(record=True, width=100, force_terminal=True)


def _questions(count: int = 2):
    return [
        make_question(
            f"q{i}",
            submodule="Routing" if i % 2 == 0 else "Switching",
            explanation=f"Why {i}.",
        )
        for i in range(count)
    ]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_parse_session_command_variants():
    assert parse_session_command("B") == SessionCommand("select", "b")
    assert parse_session_command("3c") == SessionCommand("select", "c", 2)
    assert parse_session_command("  Next ") == SessionCommand("next")
    assert parse_session_command("p") == SessionCommand("prev")
    assert parse_session_command("g 4") == SessionCommand("goto", index=3)
    assert parse_session_command("x") == SessionCommand("clear")
    assert parse_session_command("finish") == SessionCommand("submit")
    assert parse_session_command("quit") == SessionCommand("quit")
    assert parse_session_command(None) is None
    assert parse_session_command("") is None
    assert parse_session_command("?huh") is None


def test_format_clock():
    assert format_clock(75) == "01:15"
    assert format_clock(0) == "00:00"
    assert format_clock(None) == "00:00"


def test_learning_session_submit_flow():
    console = _console()
    engine = QuizEngine(_questions())

    result = run_quiz_session(
        engine, console, make_provider(["b", "n", "a", "submit"])
    )

    assert result.exit_action == "submitted"
    assert result.summary.total == 2
    assert result.summary.correct == 1
    assert result.summary.timing is None
    rendered = console.export_text()
    assert "Not quite." in rendered
    assert "Correct!" in rendered
    assert "Quiz Summary" in rendered
    assert "Why 0." in rendered


def test_learning_answers_are_final():
    console = _console()
    engine = QuizEngine(_questions())

    result = run_quiz_session(
        engine, console, make_provider(["a", "c", "quit"])
    )

    assert result.exit_action == "quit"
    assert result.summary is None
    assert engine.answers["q0"] == "a"
    rendered = console.export_text()
    assert "Your first answer is final in learning mode." in rendered
    assert "Ending session without submission." in rendered


def test_list_layout_selects_by_number():
    console = _console()
    engine = QuizEngine(_questions(3), layout=QuestionLayout.LIST)

    result = run_quiz_session(
        engine, console, make_provider(["3a", "9a", "2z", "s"])
    )

    assert engine.answers == {"q2": "a"}
    assert result.summary.correct == 1
    assert result.summary.skipped == 2
    rendered = console.export_text()
    assert "No such question." in rendered
    assert "'z' is not a valid choice for this question." in rendered


def test_timed_session_expires_while_waiting_for_input():
    clock = FakeClock()
    console = _console()
    engine = QuizEngine(
        _questions(), mode=QuizMode.TIMED, time_limit_minutes=1
    )

    def _slow_provider() -> str:
        clock.now += 61
        return "a"

    result = run_quiz_session(
        engine, console, _slow_provider, ticker=ClockTicker(clock)
    )

    assert result.exit_action == "expired"
    assert result.summary.skipped == 2
    assert result.summary.timing.elapsed_seconds == 60
    rendered = console.export_text()
    assert "Time is up. Answers submitted." in rendered
    assert "01:00 of 01:00" in rendered


def test_timed_submit_confirms_unanswered_questions():
    prompts = []
    answers = iter([False, True])

    def _confirm(prompt: str) -> bool:
        prompts.append(prompt)
        return next(answers)

    engine = QuizEngine(
        _questions(3), mode=QuizMode.TIMED, time_limit_minutes=5
    )

    result = run_quiz_session(
        engine,
        _console(),
        make_provider(["submit", "b", "a", "submit"]),
        confirm=_confirm,
        ticker=ClockTicker(FakeClock()),
    )

    assert result.exit_action == "submitted"
    assert engine.answers == {"q0": "a"}
    assert prompts == [
        "3 question(s) are unanswered. Submit anyway?",
        "2 question(s) are unanswered. Submit anyway?",
    ]
    assert result.summary.timing.elapsed_seconds == 0


def test_timed_clear_and_unknown_commands():
    console = _console()
    engine = QuizEngine(
        _questions(), mode=QuizMode.TIMED, time_limit_minutes=5
    )

    result = run_quiz_session(
        engine,
        console,
        make_provider(["a", "x", "x", "wat", "quit"]),
        ticker=ClockTicker(FakeClock()),
    )

    assert result.exit_action == "quit"
    assert engine.answers == {}
    rendered = console.export_text()
    assert "Nothing to clear." in rendered
    assert "Unrecognized command. Try again." in rendered


def test_end_of_input_interrupts_the_session():
    console = _console()

    def _closed() -> str:
        raise EOFError

    result = run_quiz_session(QuizEngine(_questions()), console, _closed)

    assert result.exit_action == "quit"
    assert "Session interrupted." in console.export_text()


def test_empty_bank_short_circuits():
    console = _console()

    result = run_quiz_session(QuizEngine([]), console, make_provider([]))

    assert result.exit_action == "empty"
    assert "Question bank is empty." in console.export_text()


def test_render_summary_lists_highlights():
    console = _console()
    engine = QuizEngine(_questions(2))
    engine.launch()
    engine.select_answer("q0", "a")
    engine.select_answer("q1", "b")

    render_summary(console, engine.finalize(), theme="light")

    rendered = console.export_text()
    assert "Strengths: Routing (100%)" in rendered
    assert "Focus next: Switching (0%)" in rendered
    assert "By submodule" in rendered
    assert "Responses" in rendered
