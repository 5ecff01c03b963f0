"""Domain-level game state."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Deque, List, Set

from ringboard.core.rng import RNG
from ringboard.core.types import RewardKind, RingHistoryReason
from ringboard.domain.dice import DiceRoll
from ringboard.domain.economy import EconomyState
from ringboard.domain.portfolio import Holding, portfolio_value

ROLL_HISTORY_LIMIT = 10
RING_HISTORY_LIMIT = 50
START_RING = 1
START_TILE = 0


@dataclass(slots=True)
class RingHistoryEntry:
    from_ring: int | None
    to_ring: int
    tile_id: int
    reason: RingHistoryReason
    at: datetime


@dataclass
class GameState:
    """Single mutable state object for one game.

    Position and ring are written only by the turn state machine, currencies
    only by the reward composer's apply step, and `economy` only by the
    economy regulator.
    """

    seed: int
    rng: RNG
    position: int = START_TILE
    current_ring: int = START_RING
    cash: int = 0
    stars: int = 0
    coins: int = 0
    xp: int = 0
    rolls: int = 0
    holdings: List[Holding] = field(default_factory=list)
    shop_upgrades: Set[str] = field(default_factory=set)
    roll_history: Deque[DiceRoll] = field(default_factory=lambda: deque(maxlen=ROLL_HISTORY_LIMIT))
    ring_history: Deque[RingHistoryEntry] = field(
        default_factory=lambda: deque(maxlen=RING_HISTORY_LIMIT)
    )
    last_roll_regen_at: datetime | None = None
    last_daily_claim: date | None = None
    economy: EconomyState = field(default_factory=EconomyState)

    @property
    def portfolio_value(self) -> int:
        return portfolio_value(self.holdings)

    @property
    def net_worth(self) -> int:
        return self.cash + self.portfolio_value

    def balance(self, kind: RewardKind) -> int:
        return getattr(self, kind)

    def record_ring_change(
        self,
        from_ring: int | None,
        to_ring: int,
        tile_id: int,
        reason: RingHistoryReason,
        at: datetime,
    ) -> RingHistoryEntry:
        entry = RingHistoryEntry(from_ring=from_ring, to_ring=to_ring, tile_id=tile_id, reason=reason, at=at)
        self.ring_history.append(entry)
        return entry
