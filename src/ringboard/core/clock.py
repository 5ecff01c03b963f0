"""Clock abstractions so timer-driven code can run on real or manual time."""
from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...

    def monotonic_ms(self) -> float:
        ...


class SystemClock:
    """Wall clock backed by the operating system."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic_ms(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock:
    """Clock that only moves when told to. Used by tests and replays."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._elapsed_ms = 0.0

    def now(self) -> datetime:
        return self._now

    def monotonic_ms(self) -> float:
        return self._elapsed_ms

    def advance(self, ms: float) -> None:
        if ms < 0:
            raise ValueError("Cannot move a clock backwards.")
        self._elapsed_ms += ms
        self._now = self._now + timedelta(milliseconds=ms)

    def set(self, moment: datetime) -> None:
        """Jump the wall clock; the monotonic reading follows forward jumps only."""
        delta_ms = (moment - self._now).total_seconds() * 1000.0
        if delta_ms > 0:
            self._elapsed_ms += delta_ms
        self._now = moment
