"""Sources of quiz definitions available to a taker."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from .models import InvalidQuizDefinition, QuizDefinition

logger = logging.getLogger(__name__)

CLASS_DETAILS_PATH = "/api/student-classes/class-details/{class_id}"


class DataUnavailable(RuntimeError):
    """Raised when the quiz data source cannot be read."""


@dataclass(frozen=True)
class CatalogContext:
    """Who is browsing and for which class."""

    class_id: str
    taker_id: str | None = None


class QuizCatalog(Protocol):
    async def list_quizzes(
        self, context: CatalogContext
    ) -> list[QuizDefinition]: ...


class HttpQuizCatalog:
    """Read quizzes from the class-details endpoint of the data service."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport

    async def list_quizzes(
        self, context: CatalogContext
    ) -> list[QuizDefinition]:
        path = CLASS_DETAILS_PATH.format(class_id=context.class_id)
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(path, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise DataUnavailable(
                f"Data service returned {exc.response.status_code} for "
                f"class {context.class_id}."
            ) from exc
        except httpx.HTTPError as exc:
            raise DataUnavailable(
                f"Could not reach the data service: {exc}"
            ) from exc
        except ValueError as exc:
            raise DataUnavailable(
                "Data service returned a response that is not JSON."
            ) from exc

        if not isinstance(payload, Mapping):
            raise DataUnavailable("Unexpected class-details payload shape.")
        records = payload.get("quizzes") or []
        if not isinstance(records, list):
            raise DataUnavailable("Class-details 'quizzes' must be a list.")
        return list(_decode_records(records, source=self.base_url))


class FileQuizCatalog:
    """Read quizzes from a JSON Lines file, one quiz record per line.

    Records that carry ``teacherClassId`` are only listed for that class;
    records without it are listed for every class.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    async def list_quizzes(
        self, context: CatalogContext
    ) -> list[QuizDefinition]:
        records = self._read_records()
        quizzes = _decode_records(records, source=str(self.path))
        return [
            quiz
            for quiz in quizzes
            if quiz.class_id is None or quiz.class_id == context.class_id
        ]

    def _read_records(self) -> list[object]:
        if not self.path.exists():
            raise DataUnavailable(f"Quiz catalog not found: {self.path}")
        records: list[object] = []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                for number, line in enumerate(fh, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        records.append(json.loads(line))
                    except json.JSONDecodeError as exc:
                        raise DataUnavailable(
                            f"{self.path}:{number}: invalid JSON ({exc.msg})."
                        ) from exc
        except OSError as exc:
            raise DataUnavailable(
                f"Could not read quiz catalog {self.path}: {exc}"
            ) from exc
        return records


def _decode_records(
    records: Iterable[object], *, source: str
) -> Iterable[QuizDefinition]:
    for position, record in enumerate(records):
        if not isinstance(record, Mapping):
            logger.warning(
                "Skipping non-object quiz record %s from %s",
                position,
                source,
                extra={"event_type": "quiz_record_skipped"},
            )
            continue
        try:
            yield QuizDefinition.from_record(record)
        except InvalidQuizDefinition as exc:
            logger.warning(
                "Skipping quiz record %s from %s: %s",
                position,
                source,
                exc,
                extra={"event_type": "quiz_record_skipped"},
            )


def filter_quizzes(
    quizzes: Sequence[QuizDefinition], term: str | None
) -> list[QuizDefinition]:
    """Case-insensitive substring match on title and description."""

    needle = (term or "").strip().lower()
    if not needle:
        return list(quizzes)
    return [
        quiz
        for quiz in quizzes
        if needle in quiz.title.lower() or needle in quiz.description.lower()
    ]


def find_quiz(
    quizzes: Sequence[QuizDefinition], quiz_id: str
) -> QuizDefinition:
    for quiz in quizzes:
        if quiz.id == quiz_id:
            return quiz
    raise KeyError(f"Quiz not found: {quiz_id}")
