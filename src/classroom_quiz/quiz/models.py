"""Quiz definitions, session records and the errors raised around them.

Definitions arrive from the data service already decoded into plain mappings;
:meth:`QuizDefinition.from_record` turns one into an immutable
:class:`QuizDefinition`, and :func:`validate_quiz` applies the rules a
definition must satisfy before a session may start against it.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .answers import AnswerStore


class InvalidQuizDefinition(ValueError):
    """Raised when a quiz definition cannot be decoded or must not be run."""


class QuestionKind(Enum):
    """Supported question variants, valued by their wire spelling."""

    MULTIPLE_CHOICE = "mcq"
    FREE_TEXT = "text"

    @classmethod
    def from_value(cls, value: str) -> "QuestionKind":
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise InvalidQuizDefinition(
            f"Unknown question type '{value}'. Expected one of: {expected}."
        )


class SessionState(Enum):
    BROWSING = "browsing"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CompletionTrigger(Enum):
    """What moved a session into ``COMPLETED``."""

    SUBMIT = "submit"
    EXPIRY = "expiry"


@dataclass(frozen=True)
class Question:
    text: str
    kind: QuestionKind
    correct_answer: str
    options: tuple[str, ...] = ()

    @property
    def is_multiple_choice(self) -> bool:
        return self.kind is QuestionKind.MULTIPLE_CHOICE

    @classmethod
    def from_record(cls, data: Mapping[str, object]) -> "Question":
        text = data.get("question", data.get("text"))
        if not isinstance(text, str):
            raise InvalidQuizDefinition("Question text must be a string.")
        kind = QuestionKind.from_value(str(data.get("questionType") or "mcq"))
        answer = data.get("answer", data.get("correctAnswer"))
        if answer is None:
            raise InvalidQuizDefinition(
                f"Question '{text}' does not define an answer."
            )
        raw_options = data.get("options") or ()
        if isinstance(raw_options, (str, bytes)) or not isinstance(
            raw_options, Sequence
        ):
            raise InvalidQuizDefinition(
                f"Options for question '{text}' must be a list."
            )
        return cls(
            text=text,
            kind=kind,
            correct_answer=str(answer),
            options=tuple(str(option) for option in raw_options),
        )


@dataclass(frozen=True)
class QuizDefinition:
    """An ordered set of questions plus the wall-clock time allowed to answer them."""

    id: str
    title: str
    questions: tuple[Question, ...]
    time_limit_seconds: int
    description: str = ""
    class_id: str | None = None

    @property
    def total_count(self) -> int:
        return len(self.questions)

    @classmethod
    def from_record(cls, data: Mapping[str, object]) -> "QuizDefinition":
        """Decode a quiz as served by the class-details endpoint.

        The time limit comes from ``timeLimitSeconds`` when present, else
        from ``timeMinutes`` converted to seconds.
        """

        identifier = data.get("_id", data.get("id"))
        if identifier is None:
            raise InvalidQuizDefinition("Quiz record has no identifier.")
        raw_questions = data.get("questions")
        if raw_questions is None:
            raw_questions = []
        if not isinstance(raw_questions, Sequence) or isinstance(
            raw_questions, (str, bytes)
        ):
            raise InvalidQuizDefinition(
                f"Quiz '{identifier}' questions must be a list."
            )
        questions = []
        for item in raw_questions:
            if not isinstance(item, Mapping):
                raise InvalidQuizDefinition(
                    f"Quiz '{identifier}' contains a malformed question."
                )
            questions.append(Question.from_record(item))
        class_id = data.get("teacherClassId")
        return cls(
            id=str(identifier),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            questions=tuple(questions),
            time_limit_seconds=_time_limit_from(data, identifier),
            class_id=str(class_id) if class_id is not None else None,
        )


def _time_limit_from(data: Mapping[str, object], identifier: object) -> int:
    if data.get("timeLimitSeconds") is not None:
        raw, factor = data["timeLimitSeconds"], 1
    elif data.get("timeMinutes") is not None:
        raw, factor = data["timeMinutes"], 60
    else:
        raise InvalidQuizDefinition(
            f"Quiz '{identifier}' does not define a time limit."
        )
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise InvalidQuizDefinition(
            f"Quiz '{identifier}' time limit must be a number."
        )
    if not math.isfinite(raw):
        raise InvalidQuizDefinition(
            f"Quiz '{identifier}' time limit must be finite."
        )
    return int(round(raw * factor))


def validate_quiz(quiz: QuizDefinition) -> QuizDefinition:
    """Return ``quiz`` unchanged or raise :class:`InvalidQuizDefinition`."""

    if not quiz.questions:
        raise InvalidQuizDefinition(f"Quiz '{quiz.id}' has no questions.")
    if quiz.time_limit_seconds < 0:
        raise InvalidQuizDefinition(
            f"Quiz '{quiz.id}' has a negative time limit."
        )
    for index, question in enumerate(quiz.questions, start=1):
        if not question.is_multiple_choice:
            continue
        if not question.options:
            raise InvalidQuizDefinition(
                f"Question {index} of quiz '{quiz.id}' is multiple choice "
                "but has no options."
            )
        if question.correct_answer not in question.options:
            raise InvalidQuizDefinition(
                f"Question {index} of quiz '{quiz.id}' has an answer that "
                "is not one of its options."
            )
    return quiz


@dataclass(frozen=True)
class ScoreResult:
    correct_count: int
    total_count: int
    percentage: int
    outcomes: tuple[bool, ...] = ()


@dataclass
class Session:
    """One attempt at a quiz. Owned and mutated only by ``QuizRunner``."""

    quiz: QuizDefinition
    answers: "AnswerStore"
    remaining_seconds: int
    started_at: datetime
    current_index: int = 0
    state: SessionState = SessionState.IN_PROGRESS
    result: ScoreResult | None = None
    completed_by: CompletionTrigger | None = None
    finished_at: datetime | None = None
    persist_error: str | None = field(default=None, repr=False)

    @property
    def current_question(self) -> Question:
        return self.quiz.questions[self.current_index]
