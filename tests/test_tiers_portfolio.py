from __future__ import annotations

import pytest

from ringboard.domain.defs import TierDef
from ringboard.domain.portfolio import (
    Holding,
    category_ownership_percent,
    category_ownership_reward,
    portfolio_buff,
    portfolio_value,
)
from ringboard.domain.tiers import active_benefits, current_tier, next_tier, tier_progress

TIERS = [
    TierDef(tier=1, name="Starter", min_net_worth=0),
    TierDef(tier=2, name="Climber", min_net_worth=100, benefits={"star_bonus": 0.1, "daily_rolls": 2}),
    TierDef(tier=3, name="Mogul", min_net_worth=1000, benefits={"star_bonus": 0.25}),
]


def test_current_and_next_tier() -> None:
    assert current_tier(TIERS, 0).name == "Starter"
    assert current_tier(TIERS, 999).name == "Climber"
    assert current_tier(TIERS, 5000).name == "Mogul"
    assert next_tier(TIERS, 150).name == "Mogul"
    assert next_tier(TIERS, 5000) is None


def test_tier_progress_between_thresholds() -> None:
    assert tier_progress(TIERS, 550) == pytest.approx(0.5)
    assert tier_progress(TIERS, 10_000) == 1.0


def test_benefits_accumulate_by_best_value() -> None:
    assert active_benefits(TIERS, 50) == {}
    assert active_benefits(TIERS, 2000) == {"star_bonus": 0.25, "daily_rolls": 2}


def test_portfolio_buff_needs_two_categories() -> None:
    single = [Holding("AAA", "tech", 1, 10.0), Holding("BBB", "tech", 1, 10.0)]
    mixed = [
        Holding("AAA", "tech", 1, 10.0),
        Holding("BBB", "energy", 1, 10.0),
        Holding("CCC", "health", 1, 10.0),
        Holding("DDD", "retail", 1, 10.0),
        Holding("EEE", "finance", 1, 10.0),
    ]

    assert portfolio_buff(single).multiplier == 1.0
    assert portfolio_buff(mixed[:2]).bonus_percent == 2
    assert portfolio_buff(mixed).bonus_percent == 8
    assert portfolio_buff(mixed).label == "Portfolio Mastery"


def test_portfolio_value_and_ownership() -> None:
    holdings = [Holding("AAA", "tech", 3, 10.5), Holding("BBB", "energy", 1, 68.5)]

    assert portfolio_value(holdings) == 100
    assert category_ownership_percent(holdings, "energy") == pytest.approx(68.5)
    assert category_ownership_percent([], "energy") == 0.0
    assert category_ownership_reward(holdings, "missing") == 0
