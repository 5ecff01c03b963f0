"""Shared type aliases for the core and domain layers."""
from typing import Literal

TurnPhase = Literal["idle", "rolling", "moving", "landed"]
RewardKind = Literal["cash", "stars", "coins", "xp", "rolls"]
OverlayPriority = Literal["critical", "high", "normal", "low"]
PortalDirection = Literal["up", "down", "throne"]
PortalActionKind = Literal["ascend", "descend", "stay", "throne"]
RingHistoryReason = Literal["start", "move", "portal", "jump", "reset"]
TileKind = Literal["start", "category", "event", "quick_reward", "casino", "corner"]

REWARD_KINDS: tuple[RewardKind, ...] = ("cash", "stars", "coins", "xp", "rolls")
PORTAL_ACTIONS: tuple[PortalActionKind, ...] = ("ascend", "descend", "stay", "throne")
TILE_KINDS: tuple[TileKind, ...] = ("start", "category", "event", "quick_reward", "casino", "corner")
RING_HISTORY_REASONS: tuple[RingHistoryReason, ...] = ("start", "move", "portal", "jump", "reset")

__all__ = [
    "OverlayPriority",
    "PORTAL_ACTIONS",
    "PortalActionKind",
    "PortalDirection",
    "REWARD_KINDS",
    "RewardKind",
    "RING_HISTORY_REASONS",
    "RingHistoryReason",
    "TILE_KINDS",
    "TileKind",
    "TurnPhase",
]
