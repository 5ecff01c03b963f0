from __future__ import annotations

import math
from datetime import timedelta

import pytest

from ringboard.core.context import GameContext
from ringboard.core.rng import RNG
from ringboard.domain.defs import TierDef
from ringboard.domain.economy import EconomyState
from ringboard.domain.portfolio import Holding
from ringboard.domain.state import GameState
from ringboard.services.economy_service import EconomyRegulator
from ringboard.services.reward_service import (
    DEFAULT_STEPS,
    RewardComposer,
    RewardContext,
    build_reward_context,
    scale_for_roll,
)
from tests.helpers.builders import build_two_ring_board


def _build_composer(steps=DEFAULT_STEPS) -> tuple[RewardComposer, EconomyRegulator, GameContext]:
    context = GameContext.manual()
    economy = EconomyRegulator(context, EconomyState())
    composer = RewardComposer(economy=economy, topology=build_two_ring_board(), steps=steps)
    return composer, economy, context


def test_neutral_context_returns_base() -> None:
    composer, _, _ = _build_composer()

    assert composer.compose(1234, "cash") == 1234
    assert composer.compose(99.9, "coins") == 99


def test_step_order_changes_float_result() -> None:
    context = RewardContext(tier_bonuses={"cash": 2.0}, portfolio_multiplier=1.15)
    composer, _, _ = _build_composer()
    steps = dict(DEFAULT_STEPS)
    swapped = (
        ("shop", steps["shop"]),
        ("window", steps["window"]),
        ("throttle", steps["throttle"]),
        ("portfolio", steps["portfolio"]),
        ("tier", steps["tier"]),
        ("ring", steps["ring"]),
    )
    reordered, _, _ = _build_composer(swapped)

    assert composer.compose(100, "cash", context) == 345
    assert reordered.compose(100, "cash", context) == 344


def test_rolls_bypass_every_multiplier() -> None:
    composer, economy, _ = _build_composer()
    economy.start_window("scheduled", 2.0, 2.0, 10)
    context = RewardContext(
        shop_multipliers={"rolls": 3.0},
        tier_bonuses={"rolls": 1.0},
        portfolio_multiplier=1.08,
        ring=2,
    )

    assert composer.compose(3, "rolls", context) == 3


def test_window_multiplies_only_its_kinds() -> None:
    composer, economy, _ = _build_composer()
    economy.start_window("scheduled", 2.0, 1.5, 10)

    assert composer.compose(100, "stars") == 200
    assert composer.compose(100, "xp") == 150
    assert composer.compose(100, "cash") == 100
    assert composer.compose(100, "coins") == 100


def test_throttle_scales_currencies() -> None:
    composer, economy, context = _build_composer()
    throttle = economy.state.throttle
    now = context.clock.now()
    throttle.active = True
    throttle.factor = 0.75
    throttle.applied_at = now
    throttle.recover_at = now + timedelta(minutes=12)

    assert composer.compose(100, "cash") == 75
    assert composer.compose(100, "stars") == 75
    assert composer.compose(5, "rolls") == 5


def test_ring_multiplier_applies_last() -> None:
    composer, _, _ = _build_composer()

    assert composer.compose(100, "cash", RewardContext(ring=2)) == 300
    assert composer.compose(100, "cash", RewardContext(ring=1)) == 100
    assert composer.compose(100, "cash", RewardContext(ring=42)) == 100


def test_portfolio_buff_skips_stars_unless_opted_in() -> None:
    composer, _, _ = _build_composer()
    plain = RewardContext(portfolio_multiplier=1.5)
    opted_in = RewardContext(portfolio_multiplier=1.5, portfolio_applies_to_stars=True)

    assert composer.compose(100, "stars", plain) == 100
    assert composer.compose(100, "stars", opted_in) == 150
    assert composer.compose(100, "cash", plain) == 150


def test_compose_never_raises_on_bad_input() -> None:
    composer, _, _ = _build_composer()

    assert composer.compose(math.nan, "cash") == 0
    assert composer.compose(math.inf, "cash") == 0
    assert composer.compose("100", "cash") == 0  # type: ignore[arg-type]
    assert composer.compose(100, "gems") == 0  # type: ignore[arg-type]


def test_non_finite_step_factor_counts_as_one() -> None:
    composer, _, _ = _build_composer()
    context = RewardContext(shop_multipliers={"cash": math.inf}, tier_bonuses={"cash": math.nan})

    assert composer.compose(100, "cash", context) == 100


def test_failing_step_is_skipped() -> None:
    def _broken(inputs):
        raise ZeroDivisionError("boom")

    composer, _, _ = _build_composer((("broken", _broken),) + tuple(DEFAULT_STEPS))

    assert composer.compose(100, "cash", RewardContext(ring=2)) == 300


def test_apply_adds_amounts_and_caps_rolls() -> None:
    composer, _, _ = _build_composer()
    state = GameState(seed=1, rng=RNG(1), rolls=48)

    applied = composer.apply(state, {"cash": 500, "stars": 0, "rolls": 5}, rolls_cap=50)

    assert applied == {"cash": 500, "rolls": 2}
    assert state.cash == 500
    assert state.rolls == 50


def test_apply_never_drops_balance_below_zero() -> None:
    composer, _, _ = _build_composer()
    state = GameState(seed=1, rng=RNG(1), coins=30)

    applied = composer.apply(state, {"coins": -100})

    assert state.coins == 0
    assert applied == {"coins": -30}


def test_scale_for_roll_leaves_rolls_alone() -> None:
    scaled = scale_for_roll({"cash": 100, "stars": 10, "rolls": 2}, 5)

    assert scaled == {"cash": 500, "stars": 50, "rolls": 2}


def test_build_reward_context_collects_inputs() -> None:
    state = GameState(seed=1, rng=RNG(1), cash=2_000_000)
    state.shop_upgrades = {"star_magnet", "xp_booster", "unknown_upgrade"}
    state.holdings = [
        Holding("AAA", "tech", 10, 10.0),
        Holding("BBB", "energy", 10, 10.0),
        Holding("CCC", "health", 10, 10.0),
    ]
    tiers = [
        TierDef(tier=1, name="Starter", min_net_worth=0, description="", benefits={}),
        TierDef(tier=2, name="Climber", min_net_worth=1_000_000, description="", benefits={"star_bonus": 0.25}),
        TierDef(tier=3, name="Mogul", min_net_worth=5_000_000, description="", benefits={"star_bonus": 0.5}),
    ]

    context = build_reward_context(state, tiers, ring=2)

    assert context.shop_multipliers == {"stars": 1.5, "xp": 1.2}
    assert context.tier_bonuses == {"stars": 0.25}
    assert context.portfolio_multiplier == pytest.approx(1.04)
    assert context.ring == 2
