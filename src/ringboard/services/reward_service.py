"""Reward composition: base amount through the fixed multiplier pipeline.

Steps run in a fixed order on a running float and the result is floored
once at the end. Reordering steps changes results through float rounding,
so DEFAULT_STEPS is the only order the game uses.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Literal, Mapping, Sequence, Tuple

from ringboard.core.types import REWARD_KINDS, RewardKind
from ringboard.domain.defs import BoardTopology, TierDef
from ringboard.domain.economy import WindowMultipliers
from ringboard.domain.portfolio import portfolio_buff
from ringboard.domain.state import GameState
from ringboard.domain.tiers import active_benefits
from ringboard.services.economy_service import EconomyRegulator

logger = logging.getLogger(__name__)

WindowField = Literal["stars", "xp"]
PortfolioRule = Literal["always", "opt_in", "never"]

SHOP_UPGRADES: Dict[str, Tuple[RewardKind, float]] = {
    "star_magnet": ("stars", 1.5),
    "coin_press": ("coins", 1.25),
    "cash_engine": ("cash", 1.2),
    "xp_booster": ("xp", 1.2),
}


@dataclass(frozen=True, slots=True)
class KindRule:
    """How one reward kind moves through the pipeline."""

    multiplied: bool
    window: WindowField | None
    throttled: bool
    portfolio: PortfolioRule
    scales_with_roll: bool


KIND_RULES: Dict[RewardKind, KindRule] = {
    "cash": KindRule(multiplied=True, window=None, throttled=True, portfolio="always", scales_with_roll=True),
    "stars": KindRule(multiplied=True, window="stars", throttled=True, portfolio="opt_in", scales_with_roll=True),
    "coins": KindRule(multiplied=True, window=None, throttled=True, portfolio="always", scales_with_roll=True),
    "xp": KindRule(multiplied=True, window="xp", throttled=True, portfolio="always", scales_with_roll=True),
    "rolls": KindRule(multiplied=False, window=None, throttled=False, portfolio="never", scales_with_roll=False),
}

_missing_rules = set(REWARD_KINDS) ^ set(KIND_RULES)
if _missing_rules:
    raise RuntimeError(f"KIND_RULES out of sync with RewardKind: {sorted(_missing_rules)}")


@dataclass(slots=True)
class RewardContext:
    """External inputs to composition. Missing entries count as x1."""

    shop_multipliers: Dict[RewardKind, float] = field(default_factory=dict)
    tier_bonuses: Dict[RewardKind, float] = field(default_factory=dict)
    portfolio_multiplier: float = 1.0
    portfolio_applies_to_stars: bool = False
    ring: int | None = None


@dataclass(frozen=True, slots=True)
class StepInputs:
    kind: RewardKind
    rule: KindRule
    context: RewardContext
    window: WindowMultipliers
    throttle: float
    ring_multiplier: float


RewardStep = Callable[[StepInputs], float]


def shop_step(inputs: StepInputs) -> float:
    return inputs.context.shop_multipliers.get(inputs.kind, 1.0)


def window_step(inputs: StepInputs) -> float:
    if inputs.rule.window == "stars":
        return inputs.window.stars_multiplier
    if inputs.rule.window == "xp":
        return inputs.window.xp_multiplier
    return 1.0


def throttle_step(inputs: StepInputs) -> float:
    return inputs.throttle if inputs.rule.throttled else 1.0


def tier_step(inputs: StepInputs) -> float:
    return 1.0 + inputs.context.tier_bonuses.get(inputs.kind, 0.0)


def portfolio_step(inputs: StepInputs) -> float:
    if inputs.rule.portfolio == "always":
        return inputs.context.portfolio_multiplier
    if inputs.rule.portfolio == "opt_in" and inputs.context.portfolio_applies_to_stars:
        return inputs.context.portfolio_multiplier
    return 1.0


def ring_step(inputs: StepInputs) -> float:
    return inputs.ring_multiplier


DEFAULT_STEPS: Tuple[Tuple[str, RewardStep], ...] = (
    ("shop", shop_step),
    ("window", window_step),
    ("throttle", throttle_step),
    ("tier", tier_step),
    ("portfolio", portfolio_step),
    ("ring", ring_step),
)


def _finite_or_one(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 1.0
    return float(value) if math.isfinite(value) else 1.0


class RewardComposer:
    """Composes and applies currency rewards."""

    def __init__(
        self,
        *,
        economy: EconomyRegulator,
        topology: BoardTopology,
        steps: Sequence[Tuple[str, RewardStep]] = DEFAULT_STEPS,
    ) -> None:
        self._economy = economy
        self._topology = topology
        self._steps = tuple(steps)

    def compose(self, base_amount: float, kind: RewardKind, context: RewardContext | None = None) -> int:
        """Final integer amount. Never raises."""
        if isinstance(base_amount, bool) or not isinstance(base_amount, (int, float)):
            return 0
        if not math.isfinite(base_amount):
            return 0
        rule = KIND_RULES.get(kind)
        if rule is None:
            logger.warning("reward_kind_unknown kind=%s", kind)
            return 0
        if not rule.multiplied:
            return math.floor(base_amount)

        context = context or RewardContext()
        inputs = StepInputs(
            kind=kind,
            rule=rule,
            context=context,
            window=self._economy.get_economy_window_multipliers(),
            throttle=self._economy.throttle_multiplier(),
            ring_multiplier=(
                self._topology.reward_multiplier(context.ring) if context.ring is not None else 1.0
            ),
        )
        running = float(base_amount)
        for name, step in self._steps:
            try:
                factor = _finite_or_one(step(inputs))
            except Exception:
                logger.exception("reward_step_failed step=%s kind=%s", name, kind)
                factor = 1.0
            running *= factor
        if not math.isfinite(running):
            return 0
        return math.floor(running)

    def compose_all(
        self, base_amounts: Mapping[RewardKind, float], context: RewardContext | None = None
    ) -> Dict[RewardKind, int]:
        return {kind: self.compose(amount, kind, context) for kind, amount in base_amounts.items()}

    def apply(
        self,
        state: GameState,
        amounts: Mapping[RewardKind, int],
        *,
        rolls_cap: int | None = None,
    ) -> Dict[RewardKind, int]:
        """Add composed amounts to the state in one step. Returns what was actually added."""
        applied: Dict[RewardKind, int] = {}
        for kind, amount in amounts.items():
            if kind not in KIND_RULES or amount == 0:
                continue
            current = state.balance(kind)
            updated = current + amount
            if kind == "rolls" and rolls_cap is not None:
                updated = min(updated, max(current, rolls_cap))
            updated = max(0, updated)
            setattr(state, kind, updated)
            if updated != current:
                applied[kind] = updated - current
        return applied


def scale_for_roll(base_amounts: Mapping[RewardKind, float], roll_multiplier: int) -> Dict[RewardKind, float]:
    """Apply the chosen roll multiplier to the kinds that scale with it."""
    return {
        kind: amount * roll_multiplier if KIND_RULES[kind].scales_with_roll else amount
        for kind, amount in base_amounts.items()
    }


def build_reward_context(
    state: GameState, tiers: Sequence[TierDef], ring: int | None = None
) -> RewardContext:
    """Collect shop, tier and portfolio inputs from the current game state."""
    shop_multipliers: Dict[RewardKind, float] = {}
    for upgrade in sorted(state.shop_upgrades):
        effect = SHOP_UPGRADES.get(upgrade)
        if effect is None:
            continue
        kind, factor = effect
        shop_multipliers[kind] = shop_multipliers.get(kind, 1.0) * factor

    tier_bonuses: Dict[RewardKind, float] = {}
    if tiers:
        benefits = active_benefits(tiers, state.net_worth)
        if benefits.get("star_bonus"):
            tier_bonuses["stars"] = benefits["star_bonus"]
        if benefits.get("xp_multiplier", 1.0) > 1.0:
            tier_bonuses["xp"] = benefits["xp_multiplier"] - 1.0

    buff = portfolio_buff(state.holdings)
    return RewardContext(
        shop_multipliers=shop_multipliers,
        tier_bonuses=tier_bonuses,
        portfolio_multiplier=buff.multiplier,
        ring=ring,
    )
