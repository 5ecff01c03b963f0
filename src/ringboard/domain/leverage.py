"""Roll multipliers unlocked by leverage level."""
from __future__ import annotations

import math
from typing import Tuple

MULTIPLIERS: Tuple[int, ...] = (1, 2, 5, 10, 20, 50, 100)
LEVERAGE_MAX_LEVEL = len(MULTIPLIERS) - 1
# Momentum needed to hold each leverage level, indexed by level.
LEVERAGE_MOMENTUM_THRESHOLDS: Tuple[int, ...] = (0, 15, 30, 45, 60, 75, 90)


def clamp_leverage_level(level: float) -> int:
    if not math.isfinite(level):
        return 0
    return max(0, min(LEVERAGE_MAX_LEVEL, math.floor(level)))


def leverage_for_momentum(momentum: float) -> int:
    """Highest level whose momentum threshold is met."""
    level = 0
    for candidate, threshold in enumerate(LEVERAGE_MOMENTUM_THRESHOLDS):
        if momentum >= threshold:
            level = candidate
    return level


def unlocked_multipliers(level: float) -> Tuple[int, ...]:
    return MULTIPLIERS[: clamp_leverage_level(level) + 1]


def clamp_multiplier_to_leverage(multiplier: int, level: float) -> int:
    """Return the multiplier if unlocked, otherwise fall back to x1."""
    unlocked = unlocked_multipliers(level)
    if multiplier in unlocked:
        return multiplier
    return unlocked[0]
