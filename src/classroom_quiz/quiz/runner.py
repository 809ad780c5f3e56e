"""State machine for taking one timed quiz.

``QuizRunner`` moves between ``BROWSING`` (no session), ``IN_PROGRESS`` and
``COMPLETED``. Manual submission and timer expiry share a single completion
path guarded by the current state, so whichever arrives first scores the
attempt and the other is absorbed. The session's timer is cancelled on every
path out of ``IN_PROGRESS``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from .answers import AnswerStore
from .models import (
    CompletionTrigger,
    Question,
    QuizDefinition,
    ScoreResult,
    Session,
    SessionState,
    validate_quiz,
)
from .results import AttemptRecord, ResultSink, ResultSinkError
from .scoring import score
from .timer import LoopSessionTimer, SessionTimer

TimerFactory = Callable[[], SessionTimer]
AnswersFactory = Callable[[], AnswerStore]
TickHook = Callable[[int], None]
CompleteHook = Callable[[Session], None]


class InvalidTransition(RuntimeError):
    """Raised when an event is not allowed in the runner's current state."""


class QuizRunner:
    """Owns at most one :class:`Session` and the timer bound to it."""

    def __init__(
        self,
        *,
        timer_factory: TimerFactory = LoopSessionTimer,
        answers_factory: AnswersFactory = AnswerStore,
        sink: ResultSink | None = None,
        taker_id: str | None = None,
        on_tick: TickHook | None = None,
        on_complete: CompleteHook | None = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: logging.Logger | None = None,
    ) -> None:
        self._timer_factory = timer_factory
        self._answers_factory = answers_factory
        self._sink = sink
        self._taker_id = taker_id
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)
        self._session: Session | None = None
        self._timer: SessionTimer | None = None

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.BROWSING
        return self._session.state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def result(self) -> ScoreResult | None:
        return self._session.result if self._session else None

    @property
    def current_question(self) -> Question | None:
        if self._session is None:
            return None
        return self._session.current_question

    def progress(self) -> tuple[int, int]:
        """Return ``(position, total)`` with a 1-based position."""

        if self._session is None:
            return (0, 0)
        return (
            self._session.current_index + 1,
            self._session.quiz.total_count,
        )

    def select_quiz(self, quiz: QuizDefinition) -> Session:
        if self._session is not None:
            raise InvalidTransition(
                f"Cannot start quiz '{quiz.id}' while in state "
                f"{self.state.value}."
            )
        validate_quiz(quiz)

        session = Session(
            quiz=quiz,
            answers=self._answers_factory(),
            remaining_seconds=quiz.time_limit_seconds,
            started_at=self._clock(),
        )
        timer = self._timer_factory()
        self._session = session
        self._timer = timer
        self._logger.info(
            "Quiz session started",
            extra={
                "event_type": "session_started",
                "quiz_id": quiz.id,
                "questions": quiz.total_count,
                "time_limit": quiz.time_limit_seconds,
            },
        )
        try:
            timer.start(
                quiz.time_limit_seconds,
                lambda remaining: self._handle_tick(session, remaining),
                lambda: self._handle_expire(session),
            )
        except Exception:
            self._session = None
            self._timer = None
            raise
        return session

    def answer(self, value: str) -> bool:
        session = self._active_session("answer")
        if session is None:
            return False
        session.answers.set(session.current_index, value)
        return True

    def next(self) -> bool:
        session = self._active_session("next")
        if session is None:
            return False
        if session.current_index < session.quiz.total_count - 1:
            session.current_index += 1
        return True

    def previous(self) -> bool:
        session = self._active_session("previous")
        if session is None:
            return False
        if session.current_index > 0:
            session.current_index -= 1
        return True

    def submit(self) -> ScoreResult | None:
        """Score the attempt; returns ``None`` when nothing was in progress."""

        return self._complete(CompletionTrigger.SUBMIT)

    def abandon(self) -> None:
        """Leave an in-progress session without scoring it."""

        session = self._session
        if session is None or session.state is not SessionState.IN_PROGRESS:
            return
        self._cancel_timer()
        self._logger.info(
            "Quiz session abandoned",
            extra={
                "event_type": "session_abandoned",
                "quiz_id": session.quiz.id,
                "remaining": session.remaining_seconds,
            },
        )
        self._session = None

    def reset(self) -> None:
        """Discard a completed session and return to browsing."""

        if self._session is None:
            return
        if self._session.state is SessionState.IN_PROGRESS:
            raise InvalidTransition(
                "Cannot reset an in-progress session; submit or abandon it."
            )
        self._cancel_timer()
        self._session = None

    def _active_session(self, event: str) -> Session | None:
        session = self._session
        if session is None or session.state is not SessionState.IN_PROGRESS:
            self._logger.debug(
                "Ignored %s outside an active session",
                event,
                extra={"event_type": "event_ignored", "state": self.state.value},
            )
            return None
        return session

    def _handle_tick(self, session: Session, remaining: int) -> None:
        if session is not self._session:
            return
        if session.state is not SessionState.IN_PROGRESS:
            return
        session.remaining_seconds = min(session.remaining_seconds, remaining)
        if self._on_tick is not None:
            self._on_tick(session.remaining_seconds)

    def _handle_expire(self, session: Session) -> None:
        if session is not self._session:
            return
        self._complete(CompletionTrigger.EXPIRY)

    def _complete(self, trigger: CompletionTrigger) -> ScoreResult | None:
        session = self._session
        if session is None or session.state is not SessionState.IN_PROGRESS:
            self._logger.debug(
                "Completion via %s ignored",
                trigger.value,
                extra={
                    "event_type": "completion_ignored",
                    "trigger": trigger.value,
                    "state": self.state.value,
                },
            )
            return None

        session.state = SessionState.COMPLETED
        self._cancel_timer()
        if trigger is CompletionTrigger.EXPIRY:
            session.remaining_seconds = 0
        session.completed_by = trigger
        session.finished_at = self._clock()

        snapshot = session.answers.snapshot()
        session.answers.freeze()
        result = score(session.quiz, snapshot)
        session.result = result

        self._logger.info(
            "Quiz session completed",
            extra={
                "event_type": "session_completed",
                "quiz_id": session.quiz.id,
                "trigger": trigger.value,
                "correct": result.correct_count,
                "total": result.total_count,
                "percentage": result.percentage,
                "remaining": session.remaining_seconds,
            },
        )
        self._record(session)
        if self._on_complete is not None:
            self._on_complete(session)
        return result

    def _record(self, session: Session) -> None:
        if self._sink is None:
            return
        attempt = AttemptRecord.from_session(session, taker_id=self._taker_id)
        try:
            self._sink.record(attempt)
        except ResultSinkError as exc:
            session.persist_error = str(exc)
            self._logger.warning(
                "Could not record quiz attempt: %s",
                exc,
                extra={
                    "event_type": "attempt_record_failed",
                    "quiz_id": session.quiz.id,
                },
            )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
