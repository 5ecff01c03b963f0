"""Stock holdings and the portfolio-derived reward buffs."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

# (minimum distinct categories, bonus percent, label), best first.
BUFF_TIERS: Tuple[Tuple[int, int, str], ...] = (
    (5, 8, "Portfolio Mastery"),
    (4, 6, "Wide Diversification"),
    (3, 4, "Balanced Mix"),
    (2, 2, "Diversified Start"),
)
CATEGORY_OWNERSHIP_REWARD_BASE = 100_000


@dataclass(slots=True)
class Holding:
    ticker: str
    category: str
    shares: int
    price: float

    @property
    def value(self) -> float:
        return self.shares * self.price


@dataclass(frozen=True, slots=True)
class PortfolioBuff:
    multiplier: float
    bonus_percent: int
    label: str
    category_count: int
    holdings_count: int


def portfolio_buff(holdings: Sequence[Holding]) -> PortfolioBuff:
    holdings_count = len(holdings)
    category_count = len({holding.category for holding in holdings})
    if holdings_count < 2 or category_count < 2:
        return PortfolioBuff(1.0, 0, "No Portfolio Buff", category_count, holdings_count)
    for min_categories, bonus_percent, label in BUFF_TIERS:
        if category_count >= min_categories:
            return PortfolioBuff(
                1 + bonus_percent / 100, bonus_percent, label, category_count, holdings_count
            )
    return PortfolioBuff(1.0, 0, "No Portfolio Buff", category_count, holdings_count)


def portfolio_value(holdings: Sequence[Holding]) -> int:
    return math.floor(sum(holding.value for holding in holdings))


def category_ownership_percent(holdings: Sequence[Holding], category: str) -> float:
    total = sum(holding.value for holding in holdings)
    if total <= 0:
        return 0.0
    owned = sum(holding.value for holding in holdings if holding.category == category)
    return owned / total * 100


def category_ownership_reward(holdings: Sequence[Holding], category: str) -> int:
    """Cash paid for landing on a category tile, scaled by how much of it the player owns."""
    percent = category_ownership_percent(holdings, category)
    return math.floor(percent / 100 * CATEGORY_OWNERSHIP_REWARD_BASE)
