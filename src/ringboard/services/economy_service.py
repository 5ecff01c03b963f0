"""Economy regulator: momentum, leverage, multiplier windows and soft throttle."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Tuple

from ringboard.core.context import GameContext
from ringboard.domain import economy as rules
from ringboard.domain.economy import EconomyState, EconomyWindow, EconomyWindowType, WindowMultipliers
from ringboard.domain.leverage import (
    clamp_multiplier_to_leverage,
    leverage_for_momentum,
    unlocked_multipliers,
)

logger = logging.getLogger(__name__)

ECONOMY_TIMER_GROUP = "economy"


@dataclass(slots=True)
class EconomyEvent:
    """Base class for economy events."""


@dataclass(slots=True)
class MomentumChangedEvent(EconomyEvent):
    momentum: float
    gain: int


@dataclass(slots=True)
class LeverageUnlockedEvent(EconomyEvent):
    level: int
    multipliers: Tuple[int, ...]


@dataclass(slots=True)
class ThrottleAppliedEvent(EconomyEvent):
    factor: float
    recover_at: datetime


@dataclass(slots=True)
class ThrottleRecoveredEvent(EconomyEvent):
    pass


@dataclass(slots=True)
class WindowStartedEvent(EconomyEvent):
    window_id: str
    window_type: EconomyWindowType
    label: str
    stars_multiplier: float
    xp_multiplier: float
    end_at: datetime


@dataclass(slots=True)
class WindowEndedEvent(EconomyEvent):
    window_id: str
    window_type: EconomyWindowType


class EconomyRegulator:
    """Sole writer of an EconomyState.

    Two drivers mutate it: the periodic tick and every net-worth change. All
    reads go through the query methods, which never mutate.
    """

    def __init__(self, context: GameContext, economy: EconomyState) -> None:
        self._context = context
        self._economy = economy

    @property
    def state(self) -> EconomyState:
        return self._economy

    def tick(self, now: datetime | None = None) -> List[EconomyEvent]:
        now = now or self._context.clock.now()
        events: List[EconomyEvent] = []
        economy = self._economy
        before = economy.momentum
        if rules.apply_momentum_decay(economy, now):
            events.append(MomentumChangedEvent(momentum=economy.momentum, gain=0))
            logger.debug("momentum_decayed from=%s to=%s", before, economy.momentum)

        for window in list(economy.active_windows):
            if window.end_at <= now:
                economy.active_windows.remove(window)
                economy.last_window_ended_at = now
                events.append(WindowEndedEvent(window_id=window.id, window_type=window.type))
                logger.info("economy_window_ended id=%s type=%s", window.id, window.type)

        throttle = economy.throttle
        if throttle.active and throttle.recover_at is not None and now >= throttle.recover_at:
            throttle.active = False
            throttle.factor = 1.0
            throttle.applied_at = None
            throttle.recover_at = None
            events.append(ThrottleRecoveredEvent())
            logger.info("throttle_recovered")

        events.extend(self._maybe_start_window(now))
        self._context.events.publish_all(events)
        return events

    def on_net_worth_change(self, new_net_worth: int, now: datetime | None = None) -> List[EconomyEvent]:
        now = now or self._context.clock.now()
        economy = self._economy
        if economy.last_net_worth is None:
            economy.last_net_worth = new_net_worth
            if economy.last_decay_at is None:
                economy.last_decay_at = now
            return []
        delta = new_net_worth - economy.last_net_worth
        velocity = rules.growth_velocity(delta, economy.last_net_worth)
        economy.last_net_worth = new_net_worth
        if delta <= 0:
            # Losses only move the baseline.
            return []

        events: List[EconomyEvent] = []
        rules.apply_momentum_decay(economy, now)
        gain = rules.momentum_gain(velocity)
        if rules.add_momentum(economy, gain):
            events.append(MomentumChangedEvent(momentum=economy.momentum, gain=gain))

        target_level = leverage_for_momentum(economy.momentum)
        if target_level > economy.leverage_level:
            economy.leverage_level = target_level
            events.append(
                LeverageUnlockedEvent(level=target_level, multipliers=unlocked_multipliers(target_level))
            )
            logger.info("leverage_unlocked level=%s momentum=%s", target_level, economy.momentum)

        band = rules.throttle_band(velocity, economy.momentum)
        if rules.apply_throttle(economy.throttle, band, now):
            factor = rules.throttle_multiplier(economy.throttle, now)
            assert economy.throttle.recover_at is not None
            events.append(ThrottleAppliedEvent(factor=factor, recover_at=economy.throttle.recover_at))
            logger.info(
                "throttle_applied factor=%.2f velocity=%.3f momentum=%s", factor, velocity, economy.momentum
            )

        events.extend(self._maybe_start_window(now))
        self._context.events.publish_all(events)
        return events

    def start_window(
        self,
        window_type: EconomyWindowType,
        stars_multiplier: float,
        xp_multiplier: float,
        duration_minutes: float,
        *,
        label: str | None = None,
        now: datetime | None = None,
    ) -> EconomyWindow:
        """Open a window from outside the automatic trigger, e.g. a scheduled market event."""
        now = now or self._context.clock.now()
        window = self._open_window(
            window_type,
            WindowMultipliers(
                stars_multiplier=rules.clamp_window_multiplier(stars_multiplier),
                xp_multiplier=rules.clamp_window_multiplier(xp_multiplier),
            ),
            rules.clamp_window_minutes(duration_minutes),
            now,
            label=label,
        )
        self._context.events.publish(self._started_event(window))
        return window

    def schedule_ticks(self) -> None:
        """Arm the self re-arming periodic tick."""
        self._context.timers.cancel_group(ECONOMY_TIMER_GROUP)
        self._context.timers.schedule(
            self._context.config.economy_tick_ms,
            self._on_tick_timer,
            group=ECONOMY_TIMER_GROUP,
            label="economy_tick",
        )

    def stop_ticks(self) -> None:
        self._context.timers.cancel_group(ECONOMY_TIMER_GROUP)

    def get_active_economy_window(self, now: datetime | None = None) -> EconomyWindow | None:
        return rules.governing_window(self._economy.active_windows, now or self._context.clock.now())

    def get_economy_window_multipliers(self, now: datetime | None = None) -> WindowMultipliers:
        window = self.get_active_economy_window(now)
        if window is None:
            return rules.NEUTRAL_WINDOW
        return WindowMultipliers(
            stars_multiplier=rules.clamp_window_multiplier(window.stars_multiplier),
            xp_multiplier=rules.clamp_window_multiplier(window.xp_multiplier),
        )

    def throttle_multiplier(self, now: datetime | None = None) -> float:
        return rules.throttle_multiplier(self._economy.throttle, now or self._context.clock.now())

    def unlocked_multipliers(self) -> Tuple[int, ...]:
        return unlocked_multipliers(self._economy.leverage_level)

    def clamp_multiplier(self, multiplier: int) -> int:
        return clamp_multiplier_to_leverage(multiplier, self._economy.leverage_level)

    def _on_tick_timer(self) -> None:
        try:
            self.tick()
        finally:
            self.schedule_ticks()

    def _maybe_start_window(self, now: datetime) -> List[EconomyEvent]:
        economy = self._economy
        if self.get_active_economy_window(now) is not None:
            return []
        if not rules.window_cooldown_elapsed(economy, now) or not rules.should_start_window(economy):
            return []
        window_type = rules.window_type_for(economy.leverage_level, economy.momentum)
        window = self._open_window(
            window_type,
            rules.window_multipliers(economy.momentum, economy.leverage_level, window_type),
            rules.window_duration_minutes(economy.momentum, economy.leverage_level),
            now,
        )
        return [self._started_event(window)]

    def _open_window(
        self,
        window_type: EconomyWindowType,
        multipliers: WindowMultipliers,
        duration_minutes: int,
        now: datetime,
        *,
        label: str | None = None,
    ) -> EconomyWindow:
        economy = self._economy
        economy.window_counter += 1
        window = EconomyWindow(
            id=f"window-{economy.window_counter}",
            type=window_type,
            label=label or rules.WINDOW_LABELS.get(window_type, window_type),
            start_at=now,
            end_at=now + timedelta(minutes=duration_minutes),
            stars_multiplier=multipliers.stars_multiplier,
            xp_multiplier=multipliers.xp_multiplier,
            trigger_momentum=economy.momentum,
            trigger_leverage=economy.leverage_level,
        )
        economy.active_windows.append(window)
        logger.info(
            "economy_window_started id=%s type=%s minutes=%s stars=%s xp=%s",
            window.id,
            window.type,
            duration_minutes,
            window.stars_multiplier,
            window.xp_multiplier,
        )
        return window

    @staticmethod
    def _started_event(window: EconomyWindow) -> WindowStartedEvent:
        return WindowStartedEvent(
            window_id=window.id,
            window_type=window.type,
            label=window.label,
            stars_multiplier=window.stars_multiplier,
            xp_multiplier=window.xp_multiplier,
            end_at=window.end_at,
        )
