"""Recording finished attempts with an external store."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Mapping, Protocol

import httpx

from .models import CompletionTrigger, Session
from .scoring import letter_grade


class ResultSinkError(RuntimeError):
    """Raised when an attempt could not be recorded."""


@dataclass(frozen=True)
class AttemptRecord:
    """Read-only account of one completed session."""

    quiz_id: str
    quiz_title: str
    class_id: str | None
    taker_id: str | None
    completed_by: CompletionTrigger
    started_at: datetime
    finished_at: datetime
    correct_count: int
    total_count: int
    percentage: int
    answers: Mapping[int, str] = field(default_factory=dict)

    @property
    def grade(self) -> str:
        return letter_grade(self.percentage)

    @classmethod
    def from_session(
        cls, session: Session, *, taker_id: str | None = None
    ) -> "AttemptRecord":
        if session.result is None or session.completed_by is None:
            raise ValueError("Only completed sessions can be recorded.")
        return cls(
            quiz_id=session.quiz.id,
            quiz_title=session.quiz.title,
            class_id=session.quiz.class_id,
            taker_id=taker_id,
            completed_by=session.completed_by,
            started_at=session.started_at,
            finished_at=session.finished_at or session.started_at,
            correct_count=session.result.correct_count,
            total_count=session.result.total_count,
            percentage=session.result.percentage,
            answers=dict(session.answers.snapshot()),
        )

    def to_dict(self) -> dict[str, object]:
        """JSON payload in the shape of the backend's grade records."""

        return {
            "studentId": self.taker_id,
            "teacherClassId": self.class_id,
            "assessmentType": "quiz",
            "assessmentId": self.quiz_id,
            "assessmentTitle": self.quiz_title,
            "maxMarks": self.total_count,
            "obtainedMarks": self.correct_count,
            "percentage": self.percentage,
            "grade": self.grade,
            "submittedAt": self.finished_at.isoformat(),
            "metadata": {
                "startedAt": self.started_at.isoformat(),
                "completedBy": self.completed_by.value,
                "answers": {
                    str(index): value
                    for index, value in sorted(self.answers.items())
                },
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "AttemptRecord":
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            metadata = {}
        raw_answers = metadata.get("answers") or {}
        finished = datetime.fromisoformat(str(data["submittedAt"]))
        started_raw = metadata.get("startedAt")
        return cls(
            quiz_id=str(data["assessmentId"]),
            quiz_title=str(data.get("assessmentTitle") or ""),
            class_id=_optional_str(data.get("teacherClassId")),
            taker_id=_optional_str(data.get("studentId")),
            completed_by=CompletionTrigger(
                str(metadata.get("completedBy") or "submit")
            ),
            started_at=(
                datetime.fromisoformat(str(started_raw))
                if started_raw
                else finished
            ),
            finished_at=finished,
            correct_count=int(data.get("obtainedMarks") or 0),
            total_count=int(data.get("maxMarks") or 0),
            percentage=int(data.get("percentage") or 0),
            answers={
                int(index): str(value)
                for index, value in dict(raw_answers).items()
            },
        )


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


class ResultSink(Protocol):
    def record(self, attempt: AttemptRecord) -> None: ...


class BufferedResultSink:
    """Keep attempts in memory until :meth:`flush` hands them on.

    ``record`` never does I/O, so it is safe to call from the UI event loop.
    """

    def __init__(self) -> None:
        self.pending: list[AttemptRecord] = []

    def record(self, attempt: AttemptRecord) -> None:
        self.pending.append(attempt)

    def flush(self, target: ResultSink) -> int:
        """Send pending attempts to ``target`` in order.

        Stops at the first :class:`ResultSinkError`; the failed attempt and
        everything after it stay pending.
        """

        sent = 0
        while self.pending:
            target.record(self.pending[0])
            self.pending.pop(0)
            sent += 1
        return sent


class JsonlResultSink:
    """Append attempts to a JSON Lines file, one attempt per line."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def record(self, attempt: AttemptRecord) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(attempt.to_dict(), ensure_ascii=False))
                fh.write("\n")
        except OSError as exc:
            raise ResultSinkError(
                f"Could not write attempt to {self.path}: {exc}"
            ) from exc

    def load(self) -> list[AttemptRecord]:
        if not self.path.exists():
            return []
        records: list[AttemptRecord] = []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                for line in fh:
                    line = line.strip()
                    if not line:
                        continue
                    records.append(AttemptRecord.from_dict(json.loads(line)))
        except (OSError, ValueError, KeyError) as exc:
            raise ResultSinkError(
                f"Could not read attempts from {self.path}: {exc}"
            ) from exc
        return records


class HttpResultSink:
    """POST attempts to the data service."""

    def __init__(
        self,
        base_url: str,
        *,
        path: str = "/api/grades",
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.path = path if path.startswith("/") else f"/{path}"
        self._token = token
        self._timeout = timeout
        self._transport = transport

    def record(self, attempt: AttemptRecord) -> None:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            with httpx.Client(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = client.post(
                    self.path, json=attempt.to_dict(), headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ResultSinkError(
                f"Data service rejected the attempt "
                f"({exc.response.status_code})."
            ) from exc
        except httpx.HTTPError as exc:
            raise ResultSinkError(
                f"Could not reach the data service: {exc}"
            ) from exc
