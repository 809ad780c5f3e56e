"""Builders for quiz definitions and their wire records."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from classroom_quiz.quiz.models import Question, QuestionKind, QuizDefinition


def make_question(
    text: str = "2 + 2?",
    answer: str = "4",
    options: Sequence[str] = ("3", "4", "5"),
    *,
    free_text: bool = False,
) -> Question:
    if free_text:
        return Question(
            text=text, kind=QuestionKind.FREE_TEXT, correct_answer=answer
        )
    return Question(
        text=text,
        kind=QuestionKind.MULTIPLE_CHOICE,
        correct_answer=answer,
        options=tuple(options),
    )


def make_quiz(
    *,
    quiz_id: str = "q1",
    title: str = "Arithmetic",
    questions: Optional[Sequence[Question]] = None,
    time_limit_seconds: int = 60,
    description: str = "",
    class_id: Optional[str] = "class-1",
) -> QuizDefinition:
    if questions is None:
        questions = (
            make_question("2 + 2?", "4", ("3", "4", "5")),
            make_question("Capital of France?", "Paris", free_text=True),
        )
    return QuizDefinition(
        id=quiz_id,
        title=title,
        questions=tuple(questions),
        time_limit_seconds=time_limit_seconds,
        description=description,
        class_id=class_id,
    )


def make_record(**overrides: Any) -> dict[str, Any]:
    """A quiz as the class-details endpoint serves it."""

    record: dict[str, Any] = {
        "_id": "q1",
        "title": "Arithmetic",
        "description": "Warm-up sums",
        "teacherClassId": "class-1",
        "timeMinutes": 2,
        "questions": [
            {
                "question": "2 + 2?",
                "questionType": "mcq",
                "options": ["3", "4", "5"],
                "answer": "4",
            },
            {
                "question": "Capital of France?",
                "questionType": "text",
                "answer": "Paris",
            },
        ],
    }
    record.update(overrides)
    return record
