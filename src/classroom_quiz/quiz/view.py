"""Textual front end for taking one quiz.

The app is a thin shell over :class:`QuizRunner`: key presses and buttons map
to runner events, and the runner's tick/complete hooks repaint the countdown
and the stage. The countdown runs on Textual's own asyncio loop.
"""

from __future__ import annotations

from typing import Optional

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widget import Widget
from textual.widgets import Button, Input, Static

from .models import (
    CompletionTrigger,
    Question,
    QuizDefinition,
    Session,
    SessionState,
)
from .results import ResultSink
from .runner import QuizRunner, TimerFactory
from .scoring import feedback_message
from .timer import LoopSessionTimer, format_remaining


class QuizApp(App):
    CSS_PATH = None
    CSS = """
#choices Button.selected { background: $accent; color: black; }
#timer { text-style: bold; }
#timer.low { color: $error; }
#nav { height: auto; }
"""
    BINDINGS = [
        ("n", "next", "Next"),
        ("p", "prev", "Previous"),
        ("s", "submit", "Submit"),
        ("escape", "abandon", "Abandon"),
        ("q", "close", "Close"),
    ] + [(str(i), f"choose({i - 1})", f"Option {i}") for i in range(1, 10)]

    def __init__(
        self,
        quiz: QuizDefinition,
        *,
        timer_factory: TimerFactory = LoopSessionTimer,
        sink: ResultSink | None = None,
        taker_id: str | None = None,
        low_time_warning_seconds: int = 60,
        pass_percentage: int = 70,
    ) -> None:
        super().__init__()
        self.quiz = quiz
        self.low_time_warning_seconds = low_time_warning_seconds
        self.pass_percentage = pass_percentage
        self.abandoned = False
        self._remaining = quiz.time_limit_seconds
        self.runner = QuizRunner(
            timer_factory=timer_factory,
            sink=sink,
            taker_id=taker_id,
            on_tick=self._handle_tick,
            on_complete=self._handle_complete,
        )

    def compose(self) -> ComposeResult:
        yield Static(self.quiz.title or self.quiz.id, id="title")
        yield Static(self._timer_text(), id="timer")
        with Container(id="stage"):
            yield from self._stage_widgets()
        with Horizontal(id="nav"):
            yield Button("Previous", id="prev")
            yield Button("Next", id="next")
            yield Button("Submit Quiz", id="submit")
        yield Static(self._answered_text(), id="answered")

    def on_mount(self) -> None:
        self.start_session()

    def start_session(self) -> Session:
        session = self.runner.select_quiz(self.quiz)
        self._update_stage()
        return session

    # Actions

    def action_next(self) -> None:
        if self.runner.next():
            self._update_stage()

    def action_prev(self) -> None:
        if self.runner.previous():
            self._update_stage()

    def action_submit(self) -> None:
        self.runner.submit()

    def action_choose(self, index: int) -> None:
        question = self.runner.current_question
        if question is None or not question.is_multiple_choice:
            return
        if not 0 <= index < len(question.options):
            return
        if self.runner.answer(question.options[index]):
            self._update_stage()

    def action_abandon(self) -> None:
        if self.runner.state is SessionState.IN_PROGRESS:
            self.runner.abandon()
            self.abandoned = True
        self.exit()

    def action_close(self) -> None:
        if self.runner.state is SessionState.IN_PROGRESS:
            return
        self.exit(self.runner.session)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = getattr(event.button, "id", "") or ""
        if button_id.startswith("choice-"):
            try:
                self.action_choose(int(button_id.split("-", 1)[1]))
            except ValueError:
                return
        elif button_id == "submit":
            self.action_submit()
        elif button_id == "next":
            self.action_next()
        elif button_id == "prev":
            self.action_prev()

    def on_input_changed(self, event: Input.Changed) -> None:
        if getattr(event.input, "id", None) != "free-text":
            return
        session = self.runner.session
        if session is not None:
            stored = session.answers.get(session.current_index)
            # Remounting the input echoes the stored value back.
            if event.value == (stored or ""):
                return
        if self.runner.answer(event.value):
            self._update_answered()

    # Runner hooks

    def _handle_tick(self, remaining: int) -> None:
        self._remaining = remaining
        try:
            timer = self.query_one("#timer", Static)
        except NoMatches:
            return
        timer.update(self._timer_text())
        timer.set_class(remaining < self.low_time_warning_seconds, "low")

    def _handle_complete(self, session: Session) -> None:
        self._remaining = session.remaining_seconds
        self._update_stage()

    # Rendering helpers

    def _stage_widgets(self) -> list[Widget]:
        session = self.runner.session
        if session is None:
            return [Static("Loading quiz...", id="loading")]
        if session.state is SessionState.COMPLETED:
            return [Static(self.summary_text(), id="summary")]
        position, total = self.runner.progress()
        question = session.current_question
        return [
            QuestionView(
                question,
                index=position,
                total=total,
                selected=session.answers.get(session.current_index),
            )
        ]

    def _update_stage(self) -> None:
        try:
            stage = self.query_one("#stage", Container)
        except NoMatches:
            return
        stage.remove_children()
        stage.mount(*self._stage_widgets())
        self._update_answered()

    def _update_answered(self) -> None:
        try:
            answered = self.query_one("#answered", Static)
        except NoMatches:
            return
        answered.update(self._answered_text())

    def _timer_text(self) -> str:
        return f"Time left {format_remaining(self._remaining)}"

    def _answered_text(self) -> str:
        session = self.runner.session
        if session is None:
            return f"Answered: 0/{self.quiz.total_count}"
        return (
            f"Answered: {session.answers.answered_count()}/"
            f"{session.quiz.total_count}"
        )

    def summary_text(self) -> str:
        session = self.runner.session
        if session is None or session.result is None:
            return ""
        result = session.result
        lines = []
        if session.completed_by is CompletionTrigger.EXPIRY:
            lines.append("Time is up!")
        lines.extend(
            [
                "Quiz Completed!",
                f"Score: {result.correct_count}/{result.total_count} "
                f"({result.percentage}%)",
                feedback_message(result.percentage, self.pass_percentage),
                "Press q to close.",
            ]
        )
        return "\n".join(lines)


class QuestionView(Widget):
    """One question: prompt, progress and either option buttons or a text box."""

    def __init__(
        self,
        question: Question,
        index: int,
        total: int,
        *,
        selected: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.question = question
        self.index = index
        self.total = total
        self.selected = selected

    def compose(self) -> ComposeResult:
        yield Static(f"Question {self.index} of {self.total}", id="progress")
        yield Static(self.question.text, id="stem")
        if self.question.is_multiple_choice:
            with Vertical(id="choices"):
                for position, option in enumerate(self.question.options):
                    button = Button(
                        f"{position + 1}) {option}", id=f"choice-{position}"
                    )
                    if option == self.selected:
                        button.add_class("selected")
                    yield button
        else:
            yield Input(
                value=self.selected or "",
                placeholder="Type your answer here...",
                id="free-text",
            )
