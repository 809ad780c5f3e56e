"""Countdown timers that drive session expiry.

The countdown runs on the asyncio event loop the UI already uses: each step
is a ``call_later`` callback, so ticks and expiry are delivered one at a time
on the loop thread and never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

TickCallback = Callable[[int], None]
ExpireCallback = Callable[[], None]

logger = logging.getLogger(__name__)


class SessionTimer(Protocol):
    """What ``QuizRunner`` needs from a countdown."""

    def start(
        self,
        duration_seconds: int,
        on_tick: TickCallback,
        on_expire: ExpireCallback,
    ) -> None: ...

    def cancel(self) -> None: ...

    @property
    def remaining(self) -> int: ...

    @property
    def expired(self) -> bool: ...


class LoopSessionTimer:
    """One-shot countdown with one tick per ``interval`` seconds.

    ``on_tick`` receives the full duration on the first loop iteration after
    :meth:`start`, then each decremented value down to and including 0, at
    which point ``on_expire`` runs exactly once. A non-positive duration skips
    the ticks and expires on the next loop iteration.
    """

    def __init__(
        self,
        *,
        interval: float = 1.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = interval
        self._loop = loop
        self._handle: asyncio.Handle | None = None
        self._remaining = 0
        self._duration = 0
        self._started = False
        self._cancelled = False
        self._expired = False
        self._on_tick: TickCallback | None = None
        self._on_expire: ExpireCallback | None = None

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return self._started and not (self._cancelled or self._expired)

    def start(
        self,
        duration_seconds: int,
        on_tick: TickCallback,
        on_expire: ExpireCallback,
    ) -> None:
        if self._started:
            raise RuntimeError("Timer already started; use a fresh timer.")
        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        self._started = True
        self._duration = max(int(duration_seconds), 0)
        self._remaining = self._duration
        self._on_tick = on_tick
        self._on_expire = on_expire

        logger.debug(
            "Countdown started",
            extra={
                "event_type": "timer_started",
                "duration": self._duration,
                "interval": self._interval,
            },
        )
        if self._duration == 0:
            self._handle = loop.call_soon(self._expire)
        else:
            self._handle = loop.call_soon(self._initial_tick)

    def cancel(self) -> None:
        if self._cancelled or self._expired:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._started:
            logger.debug(
                "Countdown cancelled",
                extra={
                    "event_type": "timer_cancelled",
                    "remaining": self._remaining,
                },
            )

    def _initial_tick(self) -> None:
        self._handle = None
        if self._cancelled:
            return
        self._deliver_tick()
        self._schedule_next()

    def _step(self) -> None:
        self._handle = None
        if self._cancelled:
            return
        self._remaining -= 1
        self._deliver_tick()
        if self._remaining > 0:
            self._schedule_next()
        else:
            self._expire()

    def _deliver_tick(self) -> None:
        if self._on_tick is None:
            return
        try:
            self._on_tick(self._remaining)
        except Exception:
            # The countdown must still reach expiry.
            logger.exception(
                "Tick callback failed",
                extra={
                    "event_type": "timer_tick_failed",
                    "remaining": self._remaining,
                },
            )

    def _schedule_next(self) -> None:
        if self._cancelled or self._loop is None:
            return
        self._handle = self._loop.call_later(self._interval, self._step)

    def _expire(self) -> None:
        self._handle = None
        if self._cancelled or self._expired:
            return
        self._expired = True
        logger.debug(
            "Countdown expired",
            extra={"event_type": "timer_expired", "duration": self._duration},
        )
        if self._on_expire is not None:
            self._on_expire()


def format_remaining(seconds: int) -> str:
    """Render a countdown value as ``M:SS``."""

    seconds = max(int(seconds), 0)
    minutes, rest = divmod(seconds, 60)
    return f"{minutes}:{rest:02d}"
