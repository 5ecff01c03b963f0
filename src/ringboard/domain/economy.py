"""Economy state and the pure momentum, throttle and window rules.

The EconomyRegulator service owns an EconomyState and calls these helpers;
nothing here reads a clock, so every function takes `now` explicitly.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Literal, Tuple

MOMENTUM_MAX = 100
MOMENTUM_MIN = 0
MOMENTUM_DECAY_PER_MINUTE = 1
MOMENTUM_GAIN_SCALE = 40
BASE_NET_WORTH = 100_000

SOFT_THROTTLE_MIN_PERCENT = 0.08
SOFT_THROTTLE_BANDS: Tuple[Tuple[float, float], ...] = (
    (0.25, 0.6),
    (0.18, 0.7),
    (0.12, 0.8),
    (SOFT_THROTTLE_MIN_PERCENT, 0.9),
)
SOFT_THROTTLE_MIN_MULTIPLIER = 0.6
SOFT_THROTTLE_DURATION_MINUTES = 12
SOFT_THROTTLE_HOT_MOMENTUM = 70
SOFT_THROTTLE_HOT_STEP = 0.05

WINDOW_MIN_MINUTES = 5
WINDOW_MAX_MINUTES = 25
WINDOW_COOLDOWN_MINUTES = 15
WINDOW_MIN_MOMENTUM = 35
WINDOW_MIN_LEVERAGE = 1
WINDOW_RICH_LEVERAGE = 2
WINDOW_HOT_MOMENTUM = 55
WINDOW_HOT_STREAK_DELTA = 15
WINDOW_HOT_NEAR_PEAK_DELTA = 12
WINDOW_MAX_MULTIPLIER = 3.0

EconomyWindowType = Literal["momentum_surge", "breakout_run", "volatility_spike", "scheduled"]

WINDOW_LABELS = {
    "momentum_surge": "Momentum Surge",
    "breakout_run": "Breakout Run",
    "volatility_spike": "Volatility Spike",
    "scheduled": "Market Event",
}


@dataclass(slots=True)
class EconomyWindow:
    id: str
    type: EconomyWindowType
    label: str
    start_at: datetime
    end_at: datetime
    stars_multiplier: float
    xp_multiplier: float
    trigger_momentum: float = 0.0
    trigger_leverage: int = 0

    def is_active(self, now: datetime) -> bool:
        return self.start_at <= now < self.end_at


@dataclass(slots=True)
class ThrottleState:
    """Soft throttle. `factor` is the dampening at `applied_at`; it eases to 1 by `recover_at`."""

    active: bool = False
    factor: float = 1.0
    applied_at: datetime | None = None
    recover_at: datetime | None = None


@dataclass(slots=True)
class EconomyState:
    momentum: float = 0.0
    momentum_floor: float = 0.0
    momentum_peak: float = 0.0
    leverage_level: int = 0
    active_windows: List[EconomyWindow] = field(default_factory=list)
    throttle: ThrottleState = field(default_factory=ThrottleState)
    last_net_worth: int | None = None
    last_decay_at: datetime | None = None
    last_window_ended_at: datetime | None = None
    window_counter: int = 0


@dataclass(frozen=True, slots=True)
class WindowMultipliers:
    stars_multiplier: float = 1.0
    xp_multiplier: float = 1.0


NEUTRAL_WINDOW = WindowMultipliers()


def clamp_momentum(value: float) -> float:
    if not math.isfinite(value):
        return MOMENTUM_MIN
    return min(MOMENTUM_MAX, max(MOMENTUM_MIN, value))


def growth_velocity(delta: float, last_net_worth: float | None) -> float:
    """Gain as a fraction of the larger of the previous net worth and BASE_NET_WORTH."""
    if not math.isfinite(delta) or delta <= 0:
        return 0.0
    base = last_net_worth if last_net_worth is not None and math.isfinite(last_net_worth) else 0
    return delta / max(base, BASE_NET_WORTH)


def momentum_gain(velocity: float) -> int:
    if velocity <= 0:
        return 0
    return max(1, round(velocity * MOMENTUM_GAIN_SCALE))


def apply_momentum_decay(economy: EconomyState, now: datetime) -> bool:
    """Decay momentum by whole elapsed minutes. Returns True if anything changed."""
    if economy.last_decay_at is None:
        economy.last_decay_at = now
        return False
    elapsed_minutes = math.floor((now - economy.last_decay_at).total_seconds() / 60)
    if elapsed_minutes <= 0:
        return False
    # Only whole minutes are consumed; the remainder carries over.
    economy.last_decay_at = economy.last_decay_at + timedelta(minutes=elapsed_minutes)
    if economy.momentum <= MOMENTUM_MIN:
        return False
    decayed = clamp_momentum(economy.momentum - elapsed_minutes * MOMENTUM_DECAY_PER_MINUTE)
    economy.momentum = decayed
    economy.momentum_floor = min(economy.momentum_floor, decayed)
    economy.momentum_peak = max(economy.momentum_peak, decayed)
    return True


def add_momentum(economy: EconomyState, gain: int) -> bool:
    if gain <= 0:
        return False
    boosted = clamp_momentum(economy.momentum + gain)
    changed = boosted != economy.momentum
    economy.momentum = boosted
    economy.momentum_floor = min(economy.momentum_floor, boosted)
    economy.momentum_peak = max(economy.momentum_peak, boosted)
    return changed


def throttle_band(velocity: float, momentum: float) -> float:
    """Dampening factor for one gain; 1.0 means the gain is not throttled."""
    band = 1.0
    for min_percent, factor in SOFT_THROTTLE_BANDS:
        if velocity >= min_percent:
            band = factor
            break
    if band >= 1.0:
        return 1.0
    if momentum >= SOFT_THROTTLE_HOT_MOMENTUM:
        steps = math.floor((momentum - SOFT_THROTTLE_HOT_MOMENTUM) / 10)
        band -= steps * SOFT_THROTTLE_HOT_STEP
    return clamp_throttle(band)


def clamp_throttle(value: float) -> float:
    if not math.isfinite(value):
        return 1.0
    return min(1.0, max(SOFT_THROTTLE_MIN_MULTIPLIER, value))


def throttle_multiplier(throttle: ThrottleState, now: datetime) -> float:
    """Current throttle, recovering linearly from `factor` toward 1."""
    if not throttle.active or throttle.recover_at is None or throttle.applied_at is None:
        return 1.0
    if now >= throttle.recover_at:
        return 1.0
    span = (throttle.recover_at - throttle.applied_at).total_seconds()
    if span <= 0:
        return clamp_throttle(throttle.factor)
    progress = max(0.0, (now - throttle.applied_at).total_seconds() / span)
    return clamp_throttle(throttle.factor + (1.0 - throttle.factor) * progress)


def apply_throttle(throttle: ThrottleState, band: float, now: datetime) -> bool:
    """Tighten the throttle to `band`; an active throttle only ever gets tighter here."""
    if band >= 1.0:
        return False
    current = throttle_multiplier(throttle, now)
    next_factor = clamp_throttle(min(current, band))
    next_recover = now + timedelta(minutes=SOFT_THROTTLE_DURATION_MINUTES)
    if throttle.active and throttle.recover_at is not None and throttle.recover_at > next_recover:
        next_recover = throttle.recover_at
    throttle.active = True
    throttle.factor = next_factor
    throttle.applied_at = now
    throttle.recover_at = next_recover
    return True


def window_type_for(leverage_level: int, momentum: float) -> EconomyWindowType:
    selector = (leverage_level + round(momentum)) % 3
    if selector == 0:
        return "momentum_surge"
    if selector == 1:
        return "breakout_run"
    return "volatility_spike"


def clamp_window_multiplier(value: float) -> float:
    if not math.isfinite(value) or value < 1:
        return 1.0
    return min(WINDOW_MAX_MULTIPLIER, round(value * 100) / 100)


def clamp_window_minutes(value: float) -> int:
    if not math.isfinite(value):
        return WINDOW_MIN_MINUTES
    return min(WINDOW_MAX_MINUTES, max(WINDOW_MIN_MINUTES, round(value)))


def window_duration_minutes(momentum: float, leverage_level: int) -> int:
    return clamp_window_minutes(WINDOW_MIN_MINUTES + math.floor(momentum / 8) + leverage_level * 2)


def window_multipliers(
    momentum: float, leverage_level: int, window_type: EconomyWindowType
) -> WindowMultipliers:
    momentum_band = math.floor(momentum / 25)
    leverage_band = max(0, leverage_level)
    base_stars = 1.1 + momentum_band * 0.15
    base_xp = 1.05 + leverage_band * 0.05
    if window_type == "breakout_run":
        stars, xp = base_stars + 0.2, base_xp + 0.1
    elif window_type == "volatility_spike":
        stars, xp = base_stars + leverage_band * 0.05, base_xp + momentum_band * 0.05
    else:
        stars, xp = base_stars, base_xp + momentum_band * 0.05
    return WindowMultipliers(
        stars_multiplier=clamp_window_multiplier(stars),
        xp_multiplier=clamp_window_multiplier(xp),
    )


def is_rich(economy: EconomyState) -> bool:
    return economy.leverage_level >= WINDOW_RICH_LEVERAGE


def is_hot(economy: EconomyState) -> bool:
    streak = economy.momentum - economy.momentum_floor
    near_peak = max(0.0, economy.momentum_peak - economy.momentum)
    return (
        economy.momentum >= WINDOW_HOT_MOMENTUM
        and streak >= WINDOW_HOT_STREAK_DELTA
        and near_peak <= WINDOW_HOT_NEAR_PEAK_DELTA
    )


def should_start_window(economy: EconomyState) -> bool:
    if economy.momentum < WINDOW_MIN_MOMENTUM or economy.leverage_level < WINDOW_MIN_LEVERAGE:
        return False
    return is_rich(economy) and is_hot(economy)


def window_cooldown_elapsed(economy: EconomyState, now: datetime) -> bool:
    if economy.last_window_ended_at is None:
        return True
    elapsed = (now - economy.last_window_ended_at).total_seconds() / 60
    return elapsed >= WINDOW_COOLDOWN_MINUTES


def governing_window(windows: List[EconomyWindow], now: datetime) -> EconomyWindow | None:
    """Most recently started window that is active at `now`."""
    active = [window for window in windows if window.is_active(now)]
    if not active:
        return None
    return max(active, key=lambda window: window.start_at)
