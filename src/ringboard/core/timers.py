"""One-shot timer scheduling on top of a Clock.

Every wait in the engine (dice delay, hop cadence, settle pause, overlay
auto-close, economy ticks, autosave debounce) is a timer owned by a
TimerScheduler. Timers carry a group name so a component can cancel all of
its pending work at once.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List

from ringboard.core.clock import Clock, ManualClock

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], None]


@dataclass(slots=True)
class TimerHandle:
    timer_id: int
    deadline_ms: float
    group: str
    label: str
    callback: TimerCallback = field(repr=False)
    cancelled: bool = False
    fired: bool = False

    @property
    def active(self) -> bool:
        return not self.cancelled and not self.fired


class TimerScheduler:
    """Keeps pending timers and fires them once their deadline passes."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._timers: List[TimerHandle] = []
        self._next_id = 1

    @property
    def clock(self) -> Clock:
        return self._clock

    def schedule(
        self,
        delay_ms: float,
        callback: TimerCallback,
        *,
        group: str = "default",
        label: str = "",
    ) -> TimerHandle:
        """Arm a one-shot timer that fires after delay_ms."""
        delay = max(0.0, float(delay_ms))
        handle = TimerHandle(
            timer_id=self._next_id,
            deadline_ms=self._clock.monotonic_ms() + delay,
            group=group,
            label=label,
            callback=callback,
        )
        self._next_id += 1
        self._timers.append(handle)
        logger.debug("timer_scheduled id=%s group=%s label=%s delay_ms=%s", handle.timer_id, group, label, delay)
        return handle

    def cancel(self, handle: TimerHandle | None) -> bool:
        """Cancel a pending timer. Returns False if it already fired or was cancelled."""
        if handle is None or not handle.active:
            return False
        handle.cancelled = True
        self._timers = [timer for timer in self._timers if timer is not handle]
        return True

    def cancel_group(self, group: str) -> int:
        """Cancel every pending timer in the group and return how many were dropped."""
        dropped = 0
        remaining: List[TimerHandle] = []
        for timer in self._timers:
            if timer.group == group:
                timer.cancelled = True
                dropped += 1
            else:
                remaining.append(timer)
        self._timers = remaining
        if dropped:
            logger.debug("timer_group_cancelled group=%s count=%s", group, dropped)
        return dropped

    def cancel_all(self) -> int:
        dropped = len(self._timers)
        for timer in self._timers:
            timer.cancelled = True
        self._timers = []
        return dropped

    def pending(self, group: str | None = None) -> List[TimerHandle]:
        timers = [timer for timer in self._timers if group is None or timer.group == group]
        return sorted(timers, key=lambda timer: (timer.deadline_ms, timer.timer_id))

    def next_deadline(self) -> float | None:
        if not self._timers:
            return None
        return min(timer.deadline_ms for timer in self._timers)

    def run_due(self) -> int:
        """Fire all timers whose deadline has passed, earliest first."""
        fired = 0
        while True:
            due = self._pop_next_due()
            if due is None:
                return fired
            due.fired = True
            fired += 1
            try:
                due.callback()
            except Exception:
                logger.exception("timer_callback_failed id=%s group=%s label=%s", due.timer_id, due.group, due.label)

    def advance(self, ms: float) -> int:
        """Move a ManualClock forward, firing timers at their own deadlines."""
        if not isinstance(self._clock, ManualClock):
            raise TypeError("advance() requires a ManualClock.")
        target = self._clock.monotonic_ms() + max(0.0, float(ms))
        fired = self.run_due()
        while True:
            deadline = self.next_deadline()
            if deadline is None or deadline > target:
                break
            step = deadline - self._clock.monotonic_ms()
            if step > 0:
                self._clock.advance(step)
            fired += self.run_due()
        remaining = target - self._clock.monotonic_ms()
        if remaining > 0:
            self._clock.advance(remaining)
        fired += self.run_due()
        return fired

    def _pop_next_due(self) -> TimerHandle | None:
        now = self._clock.monotonic_ms()
        due = [timer for timer in self._timers if timer.deadline_ms <= now]
        if not due:
            return None
        chosen = min(due, key=lambda timer: (timer.deadline_ms, timer.timer_id))
        self._timers = [timer for timer in self._timers if timer is not chosen]
        return chosen


class RealtimeDriver:
    """Drives a TimerScheduler against the wall clock by sleeping between deadlines."""

    def __init__(
        self,
        scheduler: TimerScheduler,
        *,
        max_sleep_ms: float = 100.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._scheduler = scheduler
        self._max_sleep_ms = max_sleep_ms
        self._sleep = sleep

    def run_until(self, predicate: Callable[[], bool], timeout_ms: float | None = None) -> bool:
        """Run due timers until predicate() is true. Returns False on timeout or starvation."""
        clock = self._scheduler.clock
        started = clock.monotonic_ms()
        while True:
            self._scheduler.run_due()
            if predicate():
                return True
            now = clock.monotonic_ms()
            if timeout_ms is not None and now - started >= timeout_ms:
                return False
            deadline = self._scheduler.next_deadline()
            if deadline is None:
                return predicate()
            wait_ms = min(max(0.0, deadline - now), self._max_sleep_ms)
            self._sleep(wait_ms / 1000.0)
