"""Clock and timer abstraction used for every queue wait."""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Drop the scheduled callback if it has not fired yet."""


class Scheduler(Protocol):
    """Time source for sleeps and delayed callbacks."""

    def now(self) -> datetime:
        """Current time."""

    def sleep(self, seconds: float) -> None:
        """Block the calling worker for ``seconds``."""

    def call_later(self, seconds: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``seconds``."""


class ThreadingScheduler:
    """Wall-clock scheduler backed by ``time.sleep`` and ``threading.Timer``."""

    def now(self) -> datetime:
        return utc_now()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def call_later(self, seconds: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(max(0.0, seconds), callback)
        timer.daemon = True
        timer.start()
        return timer


@dataclass(order=True)
class _ScheduledCall:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual-time scheduler: sleeps advance the clock, timers fire on ``advance``.

    Sleeps never block; they only move virtual time forward and record the
    requested duration so callers can assert on rate-limit waits.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._start = start or datetime(2026, 1, 1, tzinfo=UTC)
        self._elapsed = 0.0
        self._seq = itertools.count()
        self._calls: list[_ScheduledCall] = []
        self.sleeps: list[float] = []

    @property
    def elapsed_seconds(self) -> float:
        return self._elapsed

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._elapsed += max(0.0, seconds)

    def call_later(self, seconds: float, callback: Callable[[], None]) -> TimerHandle:
        call = _ScheduledCall(
            due=self._elapsed + max(0.0, seconds),
            seq=next(self._seq),
            callback=callback,
        )
        heapq.heappush(self._calls, call)
        return call

    def pending_delays(self) -> list[float]:
        """Remaining seconds until each live timer fires, soonest first."""

        return sorted(
            call.due - self._elapsed for call in self._calls if not call.cancelled
        )

    def advance(self, seconds: float) -> int:
        """Move time forward, firing due timers in order. Returns fired count."""

        target = self._elapsed + seconds
        fired = 0
        while self._calls and self._calls[0].due <= target:
            call = heapq.heappop(self._calls)
            if call.cancelled:
                continue
            self._elapsed = max(self._elapsed, call.due)
            call.callback()
            fired += 1
        self._elapsed = max(self._elapsed, target)
        return fired
