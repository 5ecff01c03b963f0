"""Roll-token pool: capped rolls that regenerate over time plus a daily bonus."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from ringboard.core.context import GameContext
from ringboard.domain.state import GameState

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RollPoolEvent:
    """Base class for roll pool events."""


@dataclass(slots=True)
class RollsGrantedEvent(RollPoolEvent):
    amount: int
    total: int
    source: str


@dataclass(slots=True)
class RollPoolEmptyEvent(RollPoolEvent):
    pass


class RollPoolService:
    """Owns `GameState.rolls` outside of reward application."""

    def __init__(self, context: GameContext, state: GameState) -> None:
        self._context = context
        self._state = state

    @property
    def available(self) -> int:
        return self._state.rolls

    @property
    def capacity(self) -> int:
        return self._context.config.max_rolls

    def consume(self) -> bool:
        """Take one roll. Returns False without side effects when the pool is empty."""
        if self._state.rolls <= 0:
            self._context.events.publish(RollPoolEmptyEvent())
            return False
        if self._state.rolls >= self.capacity:
            # Regeneration starts counting from the first roll spent below the cap.
            self._state.last_roll_regen_at = self._context.clock.now()
        self._state.rolls -= 1
        return True

    def grant(self, count: int, *, source: str = "grant", respect_cap: bool = True) -> int:
        """Add rolls and return how many were actually added."""
        if count <= 0:
            return 0
        before = self._state.rolls
        total = before + count
        if respect_cap:
            total = min(total, max(before, self.capacity))
        self._state.rolls = total
        granted = total - before
        if granted:
            logger.info("rolls_granted amount=%s total=%s source=%s", granted, total, source)
            self._context.events.publish(RollsGrantedEvent(amount=granted, total=total, source=source))
        return granted

    def regenerate(self, now: datetime | None = None) -> int:
        now = now or self._context.clock.now()
        config = self._context.config
        last = self._state.last_roll_regen_at
        if last is None or self._state.rolls >= self.capacity:
            self._state.last_roll_regen_at = now
            return 0
        elapsed_minutes = (now - last).total_seconds() / 60
        intervals = math.floor(elapsed_minutes / config.roll_regen_minutes)
        if intervals <= 0:
            return 0
        self._state.last_roll_regen_at = last + timedelta(minutes=intervals * config.roll_regen_minutes)
        granted = self.grant(intervals * config.roll_regen_amount, source="regen")
        if self._state.rolls >= self.capacity:
            self._state.last_roll_regen_at = now
        return granted

    def minutes_until_next_regen(self, now: datetime | None = None) -> float:
        now = now or self._context.clock.now()
        last = self._state.last_roll_regen_at
        interval = self._context.config.roll_regen_minutes
        if last is None or self._state.rolls >= self.capacity:
            return 0.0
        elapsed = (now - last).total_seconds() / 60
        return max(0.0, interval - elapsed % interval)

    def can_claim_daily(self, now: datetime | None = None) -> bool:
        now = now or self._context.clock.now()
        return self._state.last_daily_claim != now.date()

    def claim_daily_bonus(self, now: datetime | None = None, *, extra: int = 0) -> int:
        """Grant the once-per-UTC-day bonus. The bonus may exceed the cap."""
        now = now or self._context.clock.now()
        if not self.can_claim_daily(now):
            return 0
        self._state.last_daily_claim = now.date()
        return self.grant(
            self._context.config.daily_bonus_rolls + max(0, extra),
            source="daily",
            respect_cap=False,
        )
