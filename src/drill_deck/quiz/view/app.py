"""Textual front end for a :class:`QuizEngine`.

The countdown is Textual's own ``set_interval`` timer handed to the engine
as its scheduler, so finalizing the session or unmounting the app stops it.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.widget import Widget
from textual.widgets import Button, Static

from ..engine import QuizEngine
from ..models import Question, QuestionLayout, QuizMode, Summary
from ..session import format_clock
from ..ticker import Scheduler, TickHandle

TEXTUAL_THEMES = {"dark": "textual-dark", "light": "textual-light"}


class QuizApp(App):
    CSS = """
#stage { height: 1fr; overflow-y: auto; }
QuestionView { height: auto; margin: 0 0 1 0; }
.choices Button { width: 100%; }
.choices Button.selected { background: $accent; }
.choices Button.correct { background: $success; }
.choices Button.incorrect { background: $error; }
#footer { height: auto; }
#clock.warn { color: $warning; }
"""
    BINDINGS = [
        ("n", "next", "Next"),
        ("p", "prev", "Prev"),
        ("a", "select('a')", "A"),
        ("b", "select('b')", "B"),
        ("c", "select('c')", "C"),
        ("d", "select('d')", "D"),
        ("x", "clear", "Clear"),
        ("s", "submit", "Submit"),
    ]

    def __init__(self, engine: QuizEngine, *, theme: str = "dark") -> None:
        super().__init__()
        self.engine = engine
        self._palette_name = theme
        self._confirm_pending = False
        self.final_summary: Optional[Summary] = None

    def compose(self) -> ComposeResult:
        if not self.engine.questions:
            yield Static("No questions.", id="empty")
            return
        with Container(id="stage"):
            yield from self._question_views()
        with Horizontal(id="footer"):
            yield Button("Prev", id="prev")
            yield Button("Next", id="next")
            if self.engine.mode is QuizMode.TIMED:
                yield Button("Clear", id="clear")
            yield Button("Submit", id="submit")
            yield Static(self._answered_text(), id="answered")
            yield Static(self._clock_text(), id="clock")
            yield Static("", id="confirm")

    def on_mount(self) -> None:
        self.theme = TEXTUAL_THEMES.get(self._palette_name, "textual-dark")
        self.start_session()

    def on_unmount(self) -> None:
        self.engine.close()

    # Pure helpers, usable without a running App.

    def start_session(self, scheduler: Optional[Scheduler] = None) -> None:
        self.engine.launch(scheduler or self._schedule)

    def select_answer(
        self, key: str, question_id: Optional[str] = None
    ) -> bool:
        option = str(key).strip().lower()
        if question_id is None:
            changed = self.engine.select_current(option)
        else:
            changed = self.engine.select_answer(question_id, option)
        if changed:
            self._confirm_pending = False
            self._update_stage()
        return changed

    def next_question(self) -> int:
        index = self.engine.advance()
        self._update_stage()
        return index

    def prev_question(self) -> int:
        index = self.engine.retreat()
        self._update_stage()
        return index

    def clear_current(self) -> bool:
        target = self._current_id()
        if target is None or not self.engine.clear_answer(target):
            return False
        self._update_stage()
        return True

    def submit(self) -> Optional[Summary]:
        """Finalize, asking for a second press if timed answers are missing."""

        if (
            self.engine.mode is QuizMode.TIMED
            and self.engine.unanswered_count()
            and not self._confirm_pending
        ):
            self._confirm_pending = True
            self._set_static(
                "#confirm",
                f"{self.engine.unanswered_count()} unanswered. "
                "Press submit again to confirm.",
            )
            return None
        return self._finish(self.engine.finalize())

    def answered_count(self) -> int:
        return self.engine.answered_count()

    def action_next(self) -> None:
        self.next_question()

    def action_prev(self) -> None:
        self.prev_question()

    def action_select(self, key: str) -> None:
        self.select_answer(key)

    def action_clear(self) -> None:
        self.clear_current()

    def action_submit(self) -> None:
        self.submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = getattr(event.button, "id", "") or ""
        if bid.startswith("choice-"):
            _, position, key = bid.split("-", 2)
            question = self.engine.questions[int(position)]
            self.select_answer(key, question.id)
        elif bid == "submit":
            self.action_submit()
        elif bid == "next":
            self.action_next()
        elif bid == "prev":
            self.action_prev()
        elif bid == "clear":
            self.action_clear()

    def _schedule(
        self, interval: float, callback: Callable[[], None]
    ) -> TickHandle:
        def _tick() -> None:
            callback()
            if self.engine.is_running:
                self._set_static("#clock", self._clock_text())
            elif self.engine.summary is not None:
                self._finish(self.engine.summary)

        return self.set_interval(interval, _tick)

    def _finish(self, summary: Summary) -> Summary:
        self.final_summary = summary
        if self.is_running:
            self.exit(summary)
        return summary

    def _current_id(self) -> Optional[str]:
        current = self.engine.current
        return current.id if current is not None else None

    def _question_views(self) -> List["QuestionView"]:
        if self.engine.layout is QuestionLayout.LIST:
            positions = range(self.engine.total)
        else:
            positions = range(
                self.engine.current_index, self.engine.current_index + 1
            )
        return [
            QuestionView(
                self.engine.questions[position],
                position=position,
                total=self.engine.total,
                selected=self.engine.selected_for(
                    self.engine.questions[position].id
                ),
                interactive=self.engine.is_interactive(
                    self.engine.questions[position].id
                ),
                engine=self.engine,
            )
            for position in positions
        ]

    def _update_stage(self) -> None:
        if not self.engine.questions:
            return
        try:
            stage = self.query_one("#stage", Container)
        except Exception:
            return
        stage.remove_children()
        stage.mount(*self._question_views())
        self._set_static("#answered", self._answered_text())
        self._set_static("#confirm", "")

    def _set_static(self, selector: str, text: str) -> None:
        try:
            self.query_one(selector, Static).update(text)
        except Exception:
            pass

    def _answered_text(self) -> str:
        return f"Answered: {self.engine.answered_count()}/{self.engine.total}"

    def _clock_text(self) -> str:
        if self.engine.mode is not QuizMode.TIMED:
            return ""
        return format_clock(self.engine.time_remaining_seconds)


class QuestionView(Widget):
    """One question with its choices and, once revealed, the feedback."""

    def __init__(
        self,
        question: Question,
        position: int,
        total: int,
        *,
        selected: Optional[str] = None,
        interactive: bool = True,
        engine: Optional[QuizEngine] = None,
    ) -> None:
        super().__init__()
        self.question = question
        self.position = position
        self.total = total
        self.selected = selected
        self.interactive = interactive
        self.reveal = engine.reveal(question.id) if engine else None

    def compose(self) -> ComposeResult:
        yield Static(
            f"{self.position + 1}/{self.total} · {self.question.module} · "
            f"{self.question.submodule}",
            classes="progress",
        )
        yield Static(self.question.prompt, classes="stem")
        with Vertical(classes="choices"):
            for option in self.question.options:
                button = Button(
                    f"{option.id.upper()}) {option.label}",
                    id=f"choice-{self.position}-{option.id}",
                    disabled=not self.interactive,
                )
                css_class = self.choice_class(option.id)
                if css_class:
                    button.add_class(css_class)
                yield button
        yield Static(self.feedback_text(), classes="feedback")

    def choice_class(self, option_id: str) -> Optional[str]:
        if self.reveal is not None:
            state = self.reveal.option_states.get(option_id)
            return state if state in ("correct", "incorrect") else None
        if option_id == self.selected:
            return "selected"
        return None

    def feedback_text(self) -> str:
        if self.reveal is None:
            if self.selected:
                return f"Selected: {self.selected.upper()}"
            return ""
        verdict = "Correct." if self.reveal.is_correct else "Incorrect."
        return f"{verdict} {self.reveal.message}"
