"""Net worth tier lookup and accumulated tier benefits."""
from __future__ import annotations

from typing import Dict, Sequence

from ringboard.domain.defs import TierDef


def current_tier(tiers: Sequence[TierDef], net_worth: int) -> TierDef:
    """Highest tier whose threshold is reached. Tiers must be sorted by threshold."""
    reached = tiers[0]
    for tier in tiers:
        if net_worth >= tier.min_net_worth:
            reached = tier
    return reached


def next_tier(tiers: Sequence[TierDef], net_worth: int) -> TierDef | None:
    for tier in tiers:
        if net_worth < tier.min_net_worth:
            return tier
    return None


def tier_progress(tiers: Sequence[TierDef], net_worth: int) -> float:
    """Fraction of the way from the current tier to the next, 1.0 at the top."""
    reached = current_tier(tiers, net_worth)
    upcoming = next_tier(tiers, net_worth)
    if upcoming is None:
        return 1.0
    span = upcoming.min_net_worth - reached.min_net_worth
    return max(0.0, min(1.0, (net_worth - reached.min_net_worth) / span))


def active_benefits(tiers: Sequence[TierDef], net_worth: int) -> Dict[str, float]:
    """Best value of each benefit type across every tier reached so far."""
    reached = current_tier(tiers, net_worth)
    benefits: Dict[str, float] = {}
    for tier in tiers:
        if tier.min_net_worth > reached.min_net_worth:
            break
        for benefit_type, value in tier.benefits.items():
            benefits[benefit_type] = max(benefits.get(benefit_type, 0.0), value)
    return benefits
