"""Rich-powered console front end for a :class:`QuizEngine`.

The loop renders the engine state, reads one command per turn and applies
it. Timed sessions use a :class:`ClockTicker` that is pumped after every
read, so a countdown that expired while the learner was typing finalizes the
session before the command is applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Optional

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table
from rich.text import Text

from .engine import QuizEngine
from .models import GroupStat, Question, QuestionLayout, QuizMode, Summary
from .summary import format_percent
from .ticker import ClockTicker

InputProvider = Callable[[], str]
ConfirmProvider = Callable[[str], bool]
ExitAction = Literal["submitted", "expired", "quit", "empty"]
CommandType = Literal[
    "select", "next", "prev", "goto", "clear", "submit", "quit"
]


@dataclass(frozen=True)
class Palette:
    accent: str
    muted: str
    selected: str
    correct: str
    incorrect: str
    warn: str


PALETTES = {
    "dark": Palette(
        accent="bold cyan",
        muted="dim",
        selected="bold yellow",
        correct="bold green",
        incorrect="bold red",
        warn="bold magenta",
    ),
    "light": Palette(
        accent="bold blue",
        muted="grey50",
        selected="bold dark_orange3",
        correct="bold dark_green",
        incorrect="bold red3",
        warn="bold purple",
    ),
}


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: CommandType
    choice: Optional[str] = None
    index: Optional[int] = None


@dataclass(frozen=True)
class QuizSessionResult:
    summary: Optional[Summary]
    exit_action: ExitAction


def parse_session_command(raw: Optional[str]) -> Optional[SessionCommand]:
    """Parse one line of console input.

    ``b`` selects option b of the current question, ``3b`` selects option b
    of question 3 (list layout), ``g 3`` jumps to question 3.
    """

    if raw is None:
        return None
    text = raw.strip().lower()
    if not text:
        return None
    if text in {"n", "next"}:
        return SessionCommand("next")
    if text in {"p", "prev", "previous"}:
        return SessionCommand("prev")
    if text in {"s", "submit", "f", "finish"}:
        return SessionCommand("submit")
    if text in {"q", "quit", "exit"}:
        return SessionCommand("quit")
    if text in {"x", "clear"}:
        return SessionCommand("clear")
    head, _, tail = text.partition(" ")
    if head in {"g", "go", "goto"} and tail.strip().isdigit():
        return SessionCommand("goto", index=int(tail.strip()) - 1)
    if len(text) == 1 and text.isalpha():
        return SessionCommand("select", choice=text)
    number, letter = text[:-1].strip(), text[-1]
    if number.isdigit() and letter.isalpha():
        return SessionCommand("select", choice=letter, index=int(number) - 1)
    return None


def format_clock(seconds: Optional[int]) -> str:
    minutes, secs = divmod(max(seconds or 0, 0), 60)
    return f"{minutes:02d}:{secs:02d}"


def run_quiz_session(
    engine: QuizEngine,
    console: Console,
    input_provider: InputProvider,
    *,
    confirm: Optional[ConfirmProvider] = None,
    ticker: Optional[ClockTicker] = None,
    theme: str = "dark",
) -> QuizSessionResult:
    """Drive ``engine`` from console input until it finishes or is quit."""

    palette = PALETTES.get(theme, PALETTES["dark"])
    if confirm is None:

        def confirm(prompt: str) -> bool:
            return Confirm.ask(prompt, console=console, default=False)

    if engine.total == 0:
        console.print(
            Panel(
                "Question bank is empty.",
                title="Quiz Session",
                border_style="yellow",
            )
        )
        return QuizSessionResult(None, "empty")

    ticker = ticker or ClockTicker()
    with engine:
        engine.launch(ticker)
        while engine.is_running:
            _render_engine(console, engine, palette)
            try:
                raw = input_provider()
            except (EOFError, KeyboardInterrupt, StopIteration):
                console.print("\n[bold yellow]Session interrupted.[/]")
                return QuizSessionResult(None, "quit")
            ticker.pump()
            if not engine.is_running:
                break
            command = parse_session_command(raw)
            if command is None:
                console.print("[red]Unrecognized command. Try again.[/]")
                continue
            if _apply_command(command, engine, console, confirm) == "quit":
                console.print(
                    "\n[bold yellow]Ending session without submission.[/]"
                )
                return QuizSessionResult(None, "quit")

    summary = engine.finalize()
    expired = engine.mode is QuizMode.TIMED and not engine.time_remaining_seconds
    if expired:
        console.print(f"\n[{palette.warn}]Time is up. Answers submitted.[/]")
    render_summary(console, summary, theme=theme)
    return QuizSessionResult(summary, "expired" if expired else "submitted")


def _apply_command(
    command: SessionCommand,
    engine: QuizEngine,
    console: Console,
    confirm: ConfirmProvider,
) -> Optional[str]:
    if command.type == "select" and command.choice:
        question = _target_question(engine, command.index)
        if question is None:
            console.print("[red]No such question.[/red]")
            return None
        if engine.is_revealed(question.id):
            console.print(
                "[yellow]Your first answer is final in learning mode.[/]"
            )
            return None
        if question.option(command.choice) is None:
            console.print(
                "[red]'%s' is not a valid choice for this question.[/red]"
                % command.choice,
            )
            return None
        if command.index is not None and engine.layout is QuestionLayout.SINGLE:
            engine.go_to(command.index)
        engine.select_answer(question.id, command.choice)
        return None
    if command.type == "next":
        engine.advance()
        return None
    if command.type == "prev":
        engine.retreat()
        return None
    if command.type == "goto" and command.index is not None:
        engine.go_to(command.index)
        return None
    if command.type == "clear":
        current = engine.current
        if current is None or not engine.clear_answer(current.id):
            console.print("[yellow]Nothing to clear.[/]")
        return None
    if command.type == "submit":
        unanswered = engine.unanswered_count()
        if engine.mode is QuizMode.TIMED and unanswered:
            prompt = (
                f"{unanswered} question(s) are unanswered. Submit anyway?"
            )
            if not confirm(prompt):
                return None
        engine.finalize()
        return None
    if command.type == "quit":
        return "quit"
    return None


def _target_question(
    engine: QuizEngine, index: Optional[int]
) -> Optional[Question]:
    if index is None:
        return engine.current
    if 0 <= index < engine.total:
        return engine.questions[index]
    return None


def _render_engine(
    console: Console, engine: QuizEngine, palette: Palette
) -> None:
    console.print()
    if engine.layout is QuestionLayout.LIST:
        for number, question in enumerate(engine.questions, start=1):
            console.print(_question_block(engine, question, number, palette))
        hint = "choices like 3b, submit, quit"
    else:
        question = engine.current
        if question is None:
            raise RuntimeError("There is no question to show.")
        header = Text.assemble(
            (f"Question {engine.current_index + 1}", palette.accent),
            (f" / {engine.total}", palette.muted),
        )
        console.rule(header)
        console.print(_question_block(engine, question, None, palette))
        keys = ", ".join(option.id for option in question.options)
        hint = f"choices [{keys}], n (next), p (prev), g <n>"
        if engine.mode is QuizMode.TIMED:
            hint += ", x (clear)"
        hint += ", submit, quit"

    status = Text(
        f"Answered {engine.answered_count()}/{engine.total}", style=palette.muted
    )
    if engine.mode is QuizMode.TIMED:
        remaining = engine.time_remaining_seconds or 0
        style = palette.warn if remaining < 60 else palette.accent
        clock = Text(f"⏱ {format_clock(remaining)}  ", style=style)
        status = clock + status
    console.print(status)
    console.print(Text(f"Commands: {hint}", style=palette.muted))


def _question_block(
    engine: QuizEngine,
    question: Question,
    number: Optional[int],
    palette: Palette,
) -> Group:
    prefix = f"{number}. " if number is not None else ""
    parts: list = [
        Text(f"{question.module} · {question.submodule}", style=palette.muted),
        Text(prefix + question.prompt, style="bold"),
    ]

    reveal = engine.reveal(question.id)
    selected = engine.selected_for(question.id)
    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style=palette.accent)
    table.add_column("Choice")
    for option in question.options:
        marker = "•" if option.id == selected else " "
        label = Text(f"{marker} {option.label}")
        if reveal is not None:
            state = reveal.option_states[option.id]
            if state == "correct":
                label.stylize(palette.correct)
            elif state == "incorrect":
                label.stylize(palette.incorrect)
            else:
                label.stylize(palette.muted)
        elif option.id == selected:
            label.stylize(palette.selected)
        table.add_row(option.id, label)
    parts.append(table)

    if reveal is not None:
        verdict = "Correct!" if reveal.is_correct else "Not quite."
        style = palette.correct if reveal.is_correct else palette.incorrect
        parts.append(
            Panel(
                reveal.message,
                title=verdict,
                title_align="left",
                border_style=style,
            )
        )
    return Group(*parts)


def render_summary(
    console: Console, summary: Summary, *, theme: str = "dark"
) -> None:
    palette = PALETTES.get(theme, PALETTES["dark"])
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Mode", summary.mode.value)
    overview.add_row("Total questions", str(summary.total))
    overview.add_row("Correct", str(summary.correct))
    overview.add_row("Incorrect", str(summary.incorrect))
    overview.add_row("Skipped", str(summary.skipped))
    overview.add_row("Accuracy", f"{format_percent(summary.accuracy)}%")
    if summary.timing is not None:
        elapsed = format_clock(summary.timing.elapsed_seconds)
        if summary.timing.limit_seconds is not None:
            elapsed += f" of {format_clock(summary.timing.limit_seconds)}"
        overview.add_row("Time used", elapsed)
    console.print(overview)

    for title, groups in (
        ("By submodule", summary.by_submodule),
        ("By tag", summary.by_tag),
    ):
        if groups:
            console.print(_group_table(title, groups))

    if summary.strengths:
        console.print(
            Text("Strengths: ", style=palette.correct)
            + Text(", ".join(summary.strengths))
        )
    if summary.focus:
        console.print(
            Text("Focus next: ", style=palette.incorrect)
            + Text(", ".join(summary.focus))
        )

    responses = Table(title="Responses", box=box.SIMPLE, expand=True)
    responses.add_column("#", justify="right")
    responses.add_column("Question", overflow="fold")
    responses.add_column("Your answer")
    responses.add_column("Correct answer")
    responses.add_column("Result", justify="center")
    for number, result in enumerate(summary.questions, start=1):
        if result.skipped:
            outcome = "–"
        else:
            outcome = "✅" if result.was_correct else "❌"
        responses.add_row(
            str(number),
            result.prompt,
            result.selected_label or "—",
            result.correct_label,
            outcome,
        )
    console.print(responses)

    for number, result in enumerate(summary.questions, start=1):
        if result.was_correct or not result.explanation:
            continue
        console.print(
            Panel(
                result.explanation,
                title=f"Explanation · question {number}",
                border_style=palette.incorrect,
            )
        )


def _group_table(title: str, groups: tuple[GroupStat, ...]) -> Table:
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("Group")
    table.add_column("Correct", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Accuracy", justify="right")
    for group in groups:
        label = group.label
        if group.module:
            label = f"{group.module} / {group.label}"
        table.add_row(
            label,
            str(group.correct),
            str(group.total),
            f"{format_percent(group.accuracy)}%",
        )
    return table
