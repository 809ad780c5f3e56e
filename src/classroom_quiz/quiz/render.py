"""Rich renderings for the catalog, a finished session and past attempts."""

from __future__ import annotations

from collections.abc import Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import CompletionTrigger, QuizDefinition, Session
from .results import AttemptRecord
from .scoring import feedback_message, letter_grade
from .timer import format_remaining


def render_catalog(
    console: Console, quizzes: Sequence[QuizDefinition]
) -> None:
    if not quizzes:
        console.print(
            Panel(
                "No quizzes have been created for this class yet.",
                title="No Quizzes Available",
                border_style="yellow",
            )
        )
        return

    table = Table(title="Available Quizzes", box=box.SIMPLE, expand=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Description", overflow="fold")
    table.add_column("Questions", justify="right")
    table.add_column("Time", justify="right")
    for quiz in quizzes:
        table.add_row(
            quiz.id,
            quiz.title or "(untitled)",
            quiz.description,
            str(quiz.total_count),
            format_remaining(quiz.time_limit_seconds),
        )
    console.print(table)


def render_summary(
    console: Console,
    session: Session,
    *,
    pass_percentage: int = 70,
) -> None:
    """Print the score overview and the per-question breakdown."""

    result = session.result
    if result is None:
        console.print("[yellow]Quiz was not completed.[/]")
        return

    console.print()
    console.rule(Text("Quiz Completed!", style="bold magenta"))

    trigger = (
        "time expired"
        if session.completed_by is CompletionTrigger.EXPIRY
        else "submitted"
    )
    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Quiz", session.quiz.title or session.quiz.id)
    overview.add_row("Score", f"{result.correct_count}/{result.total_count}")
    overview.add_row("Answered", str(session.answers.answered_count()))
    overview.add_row("Percentage", f"{result.percentage}%")
    overview.add_row("Grade", letter_grade(result.percentage))
    overview.add_row("Completed", trigger)
    console.print(overview)

    responses = Table(title="Responses", box=box.SIMPLE, expand=True)
    responses.add_column("#", justify="right")
    responses.add_column("Question", overflow="fold")
    responses.add_column("Your answer", overflow="fold")
    responses.add_column("Correct answer", overflow="fold")
    responses.add_column("Result", justify="center")
    for index, question in enumerate(session.quiz.questions):
        given = session.answers.get(index)
        correct = (
            result.outcomes[index] if index < len(result.outcomes) else False
        )
        responses.add_row(
            str(index + 1),
            question.text,
            given if given is not None else "-",
            question.correct_answer,
            "✅" if correct else "❌",
        )
    console.print(responses)

    style = (
        "bold green" if result.percentage >= pass_percentage else "bold yellow"
    )
    console.print(
        Text(feedback_message(result.percentage, pass_percentage), style=style)
    )
    if session.persist_error:
        console.print(
            f"[red]Attempt was not recorded:[/] {session.persist_error}"
        )


def render_attempts(
    console: Console, attempts: Sequence[AttemptRecord]
) -> None:
    if not attempts:
        console.print("[dim]No recorded attempts.[/]")
        return
    table = Table(title="Recorded Attempts", box=box.SIMPLE, expand=True)
    table.add_column("Finished")
    table.add_column("Quiz", style="bold")
    table.add_column("Taker")
    table.add_column("Score", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Grade", justify="center")
    table.add_column("Completed")
    for attempt in attempts:
        table.add_row(
            attempt.finished_at.strftime("%Y-%m-%d %H:%M"),
            attempt.quiz_title or attempt.quiz_id,
            attempt.taker_id or "-",
            f"{attempt.correct_count}/{attempt.total_count}",
            str(attempt.percentage),
            attempt.grade,
            attempt.completed_by.value,
        )
    console.print(table)
