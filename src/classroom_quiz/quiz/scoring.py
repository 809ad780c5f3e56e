"""Scoring for a finished quiz attempt.

Every function here is pure: the same definition and answers always produce
the same :class:`ScoreResult`.
"""

from __future__ import annotations

from typing import Mapping

from .models import QuizDefinition, ScoreResult

# Lower bound (inclusive) for each letter, checked top-down.
_GRADE_BANDS: tuple[tuple[int, str], ...] = (
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
    (30, "D"),
)


def score(quiz: QuizDefinition, answers: Mapping[int, str]) -> ScoreResult:
    """Compare each answer to its question's correct answer.

    Matching is exact string equality: no trimming and no case folding, for
    free text as well as multiple choice. A missing answer is incorrect.
    """

    outcomes = tuple(
        answers.get(index) == question.correct_answer
        for index, question in enumerate(quiz.questions)
    )
    correct = sum(outcomes)
    total = len(outcomes)
    return ScoreResult(
        correct_count=correct,
        total_count=total,
        percentage=percentage(correct, total),
        outcomes=outcomes,
    )


def percentage(correct: int, total: int) -> int:
    """Whole-number percentage rounded half up; 0 when ``total`` is 0."""

    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def letter_grade(value: int) -> str:
    for floor, letter in _GRADE_BANDS:
        if value >= floor:
            return letter
    return "F"


def feedback_message(value: int, pass_percentage: int = 70) -> str:
    return "Great job!" if value >= pass_percentage else "Keep practicing!"
