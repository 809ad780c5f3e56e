"""Keyed storage for a taker's answers during one session."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping


class AnswerStoreFrozen(RuntimeError):
    """Raised when writing to a store after its session completed."""


class AnswerStore:
    """Question index to answer text.

    No validation against the question kind happens here. Keys appear lazily
    as the taker answers; a missing key means the question is unanswered.
    """

    def __init__(self) -> None:
        self._answers: dict[int, str] = {}
        self._frozen = False

    def set(self, index: int, value: str) -> None:
        if self._frozen:
            raise AnswerStoreFrozen("Answers are read-only once submitted.")
        self._answers[index] = value

    def get(self, index: int) -> str | None:
        return self._answers.get(index)

    def snapshot(self) -> Mapping[int, str]:
        """Return a read-only copy detached from later writes."""

        return MappingProxyType(dict(self._answers))

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def answered_count(self) -> int:
        return len(self._answers)

    def __len__(self) -> int:
        return len(self._answers)

    def __contains__(self, index: object) -> bool:
        return index in self._answers
