"""Landing-tile resolution: base rewards and the overlays a tile asks for."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

from ringboard.core.rng import RNG
from ringboard.core.types import RewardKind, TileKind
from ringboard.domain.defs import TileDef
from ringboard.domain.portfolio import category_ownership_reward
from ringboard.domain.state import GameState
from ringboard.services.overlay_service import OverlayRequest

logger = logging.getLogger(__name__)

START_BONUS = 20_000
THRONE_REWARD = 250_000
QUICK_REWARD_AUTO_CLOSE_MS = 1500

MARKET_EVENTS: Tuple[str, ...] = (
    "Federal Reserve cuts interest rates by 0.5% - Market surges!",
    "Unexpected inflation report shakes investor confidence.",
    "Tech earnings season exceeds expectations across the board.",
    "Geopolitical tensions cause market volatility spike.",
    "Major index hits all-time high on economic optimism.",
)
EVENT_CHOICES: Tuple[Tuple[str, RewardKind, int], ...] = (
    ("Take the cash", "cash", 1000),
    ("Take the stars", "stars", 20),
    ("Study the market", "xp", 30),
)

GrantCallback = Callable[[RewardKind, int, str], int]
StockPurchaseCallback = Callable[[str, Any], None]


@dataclass(slots=True)
class LandingOutcome:
    tile: TileDef
    base_rewards: Dict[RewardKind, int] = field(default_factory=dict)
    overlays: List[OverlayRequest] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


class LandingService:
    """Maps a tile kind to its effect. One handler per kind."""

    def __init__(self, *, stock_purchase: StockPurchaseCallback | None = None) -> None:
        self._stock_purchase = stock_purchase
        self._handlers: Dict[TileKind, Callable[[LandingOutcome, GameState, int, RNG, GrantCallback], None]] = {
            "start": self._land_start,
            "category": self._land_category,
            "event": self._land_event,
            "quick_reward": self._land_quick_reward,
            "casino": self._land_casino,
            "corner": self._land_corner,
        }

    def resolve(
        self, state: GameState, ring: int, tile: TileDef, *, rng: RNG, grant: GrantCallback
    ) -> LandingOutcome:
        outcome = LandingOutcome(tile=tile)
        handler = self._handlers.get(tile.kind)
        if handler is None:
            logger.error("landing_kind_unhandled kind=%s ring=%s tile=%s", tile.kind, ring, tile.id)
            return outcome
        handler(outcome, state, ring, rng, grant)
        return outcome

    @staticmethod
    def throne_rewards() -> Dict[RewardKind, int]:
        return {"cash": THRONE_REWARD}

    def _land_start(self, outcome: LandingOutcome, state: GameState, ring: int, rng: RNG, grant: GrantCallback) -> None:
        outcome.base_rewards["cash"] = START_BONUS
        outcome.notes.append("start_bonus")

    def _land_category(
        self, outcome: LandingOutcome, state: GameState, ring: int, rng: RNG, grant: GrantCallback
    ) -> None:
        category = outcome.tile.category or ""
        reward = category_ownership_reward(state.holdings, category)
        if reward > 0:
            outcome.base_rewards["cash"] = reward
            outcome.notes.append("category_ownership")

        def _purchase(selection: Any) -> None:
            if self._stock_purchase is None:
                logger.warning("stock_purchase_unavailable category=%s", category)
                return
            self._stock_purchase(category, selection)

        outcome.overlays.append(
            OverlayRequest(
                kind="stock",
                priority="normal",
                surface={"category": category, "ring": ring, "title": outcome.tile.title, "purchase": _purchase},
            )
        )

    def _land_event(self, outcome: LandingOutcome, state: GameState, ring: int, rng: RNG, grant: GrantCallback) -> None:
        headline = rng.choice(MARKET_EVENTS)
        chosen: List[int] = []

        def _choose(index: int) -> int:
            if chosen or not 0 <= index < len(EVENT_CHOICES):
                return 0
            chosen.append(index)
            _, kind, amount = EVENT_CHOICES[index]
            return grant(kind, amount, "event")

        outcome.overlays.append(
            OverlayRequest(
                kind="event",
                priority="normal",
                surface={
                    "headline": headline,
                    "choices": [
                        {"label": label, "kind": kind, "amount": amount} for label, kind, amount in EVENT_CHOICES
                    ],
                    "choose": _choose,
                },
            )
        )

    def _land_quick_reward(
        self, outcome: LandingOutcome, state: GameState, ring: int, rng: RNG, grant: GrantCallback
    ) -> None:
        tile = outcome.tile
        if tile.reward_kind is None:
            return
        amount = rng.randint(tile.min_reward, tile.max_reward)
        outcome.base_rewards[tile.reward_kind] = amount
        outcome.overlays.append(
            OverlayRequest(
                kind="quickReward",
                priority="low",
                auto_close_ms=QUICK_REWARD_AUTO_CLOSE_MS,
                surface={"title": tile.title, "kind": tile.reward_kind, "amount": amount},
            )
        )

    def _land_casino(self, outcome: LandingOutcome, state: GameState, ring: int, rng: RNG, grant: GrantCallback) -> None:
        outcome.overlays.append(
            OverlayRequest(kind="casino", priority="normal", surface={"title": outcome.tile.title, "ring": ring})
        )

    def _land_corner(self, outcome: LandingOutcome, state: GameState, ring: int, rng: RNG, grant: GrantCallback) -> None:
        outcome.notes.append("corner")
