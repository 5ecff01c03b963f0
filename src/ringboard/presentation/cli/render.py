"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
from typing import Any, Iterable, List, Mapping

from ringboard.services.economy_service import (
    LeverageUnlockedEvent,
    ThrottleAppliedEvent,
    ThrottleRecoveredEvent,
    WindowEndedEvent,
    WindowStartedEvent,
)
from ringboard.services.energy_service import RollPoolEmptyEvent, RollsGrantedEvent
from ringboard.services.overlay_service import OverlayEntry
from ringboard.services.turn_service import (
    LandedEvent,
    NotificationEvent,
    PortalTransitionEvent,
    RewardsAppliedEvent,
    RollRejectedEvent,
    RollStartedEvent,
    TeleportFlashEvent,
    TierUpEvent,
    TurnAbortedEvent,
    TurnCompletedEvent,
)


def debug_enabled() -> bool:
    """Return True only when RINGBOARD_DEBUG is explicitly set to '1'."""
    return os.getenv("RINGBOARD_DEBUG") == "1"


def format_amounts(amounts: Mapping[str, int]) -> str:
    return ", ".join(f"{amount:+,} {kind}" for kind, amount in amounts.items())


def format_event(event: object) -> str | None:
    """One display line per event, or None for events the CLI stays quiet about."""
    if isinstance(event, RollStartedEvent):
        doubles = " (doubles!)" if event.dice.is_doubles else ""
        return (
            f"Rolled {event.dice.die1} + {event.dice.die2} = {event.dice.total}{doubles} "
            f"at x{event.multiplier}. Rolls left: {event.rolls_left}"
        )
    if isinstance(event, RollRejectedEvent):
        return f"Roll rejected: {event.reason}"
    if isinstance(event, TeleportFlashEvent):
        return f"Portal! Ring {event.from_ring} -> Ring {event.to_ring}"
    if isinstance(event, LandedEvent):
        return f"Landed on ring {event.ring}, tile {event.tile_id}"
    if isinstance(event, RewardsAppliedEvent):
        return f"Rewards ({event.source}): {format_amounts(event.amounts)}. Net worth: {event.net_worth:,}"
    if isinstance(event, TierUpEvent):
        return f"Tier up! Welcome to {event.name} (tier {event.tier})"
    if isinstance(event, PortalTransitionEvent):
        return f"Moved to ring {event.to_ring}, tile {event.tile_id} ({event.reason})"
    if isinstance(event, TurnCompletedEvent):
        return "Turn complete (forced)" if event.forced else None
    if isinstance(event, TurnAbortedEvent):
        return f"Turn aborted during {event.previous_phase}: {event.reason}"
    if isinstance(event, NotificationEvent):
        return f"[{event.level}] {event.message}"
    if isinstance(event, LeverageUnlockedEvent):
        return f"Leverage level {event.level} unlocked: x{max(event.multipliers)} available"
    if isinstance(event, WindowStartedEvent):
        return (
            f"{event.label}! Stars x{event.stars_multiplier:.2f}, XP x{event.xp_multiplier:.2f} "
            f"until {event.end_at:%H:%M}"
        )
    if isinstance(event, WindowEndedEvent):
        return f"{event.window_type} window ended"
    if isinstance(event, ThrottleAppliedEvent):
        return f"Market cooling: rewards x{event.factor:.2f} until {event.recover_at:%H:%M}"
    if isinstance(event, ThrottleRecoveredEvent):
        return "Market recovered"
    if isinstance(event, RollsGrantedEvent):
        return f"+{event.amount} rolls ({event.source}). Total: {event.total}"
    if isinstance(event, RollPoolEmptyEvent):
        return "No rolls left"
    return None


def format_overlay(entry: OverlayEntry) -> List[str]:
    """Text body for an overlay surface."""
    kind = entry.request.kind
    surface: Mapping[str, Any] = entry.request.surface if isinstance(entry.request.surface, Mapping) else {}
    lines = [f"[{kind}] ({entry.priority})"]
    if kind == "stock":
        lines.append(f"{surface.get('title', '')}: browse {surface.get('category', '')} stocks")
    elif kind == "event":
        lines.append(str(surface.get("headline", "")))
        for idx, choice in enumerate(surface.get("choices", []), start=1):
            lines.append(f"  {idx}. {choice['label']} ({choice['amount']} {choice['kind']})")
    elif kind == "quickReward":
        lines.append(f"{surface.get('title', '')}: {surface.get('amount', 0):,} {surface.get('kind', '')}")
    elif kind == "portal":
        lines.append(f"Portal {surface.get('direction')}: ring {surface.get('from_ring')} -> {surface.get('to_ring')}")
    elif kind == "tierUp":
        lines.append(f"You reached {surface.get('name')}!")
    elif kind == "outOfRolls":
        lines.append(f"Out of rolls. Next roll in {surface.get('minutes_until_regen', 0):.0f} minutes.")
    elif kind == "dailyReward":
        lines.append(f"Daily bonus: {surface.get('rolls', 0)} rolls")
    elif kind == "casino":
        lines.append(f"{surface.get('title', 'Casino')}: the tables are open")
    return lines


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_bullet_lines(lines: Iterable[str]) -> None:
    """Print bullet-prefixed lines."""
    for line in lines:
        print(f"- {line}")
