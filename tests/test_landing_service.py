from __future__ import annotations

from typing import Any, List, Tuple

from ringboard.core.rng import RNG
from ringboard.domain.defs import TileDef
from ringboard.domain.portfolio import Holding
from ringboard.domain.state import GameState
from ringboard.services.landing_service import (
    EVENT_CHOICES,
    MARKET_EVENTS,
    QUICK_REWARD_AUTO_CLOSE_MS,
    START_BONUS,
    THRONE_REWARD,
    LandingService,
)


def _build_state() -> GameState:
    return GameState(seed=5, rng=RNG(5))


def _no_grant(kind: str, amount: int, source: str) -> int:
    raise AssertionError("grant should not be called")


def test_start_tile_pays_start_bonus() -> None:
    service = LandingService()
    tile = TileDef(id=0, kind="start", title="GO")

    outcome = service.resolve(_build_state(), 1, tile, rng=RNG(1), grant=_no_grant)

    assert outcome.base_rewards == {"cash": START_BONUS}
    assert outcome.overlays == []


def test_category_tile_pays_for_ownership_and_offers_stocks() -> None:
    purchases: List[Tuple[str, Any]] = []
    service = LandingService(stock_purchase=lambda category, selection: purchases.append((category, selection)))
    state = _build_state()
    state.holdings = [Holding("AAA", "tech", 25, 10.0), Holding("BBB", "energy", 75, 10.0)]
    tile = TileDef(id=3, kind="category", title="Tech Row", category="tech")

    outcome = service.resolve(state, 2, tile, rng=RNG(1), grant=_no_grant)

    assert outcome.base_rewards == {"cash": 25_000}
    assert [request.kind for request in outcome.overlays] == ["stock"]
    outcome.overlays[0].surface["purchase"]("AAA")
    assert purchases == [("tech", "AAA")]


def test_category_tile_without_holdings_pays_nothing() -> None:
    service = LandingService()
    tile = TileDef(id=3, kind="category", title="Tech Row", category="tech")

    outcome = service.resolve(_build_state(), 1, tile, rng=RNG(1), grant=_no_grant)

    assert outcome.base_rewards == {}
    assert len(outcome.overlays) == 1


def test_event_choice_grants_once() -> None:
    granted: List[Tuple[str, int, str]] = []

    def _grant(kind: str, amount: int, source: str) -> int:
        granted.append((kind, amount, source))
        return amount

    service = LandingService()
    tile = TileDef(id=7, kind="event", title="News")

    outcome = service.resolve(_build_state(), 1, tile, rng=RNG(1), grant=_grant)

    surface = outcome.overlays[0].surface
    assert surface["headline"] in MARKET_EVENTS
    assert surface["choose"](1) == EVENT_CHOICES[1][2]
    assert surface["choose"](0) == 0
    assert granted == [("stars", 20, "event")]


def test_quick_reward_rolls_within_range_and_auto_closes() -> None:
    service = LandingService()
    tile = TileDef(id=5, kind="quick_reward", title="Tip", reward_kind="cash", min_reward=500, max_reward=2000)

    outcome = service.resolve(_build_state(), 1, tile, rng=RNG(9), grant=_no_grant)

    assert 500 <= outcome.base_rewards["cash"] <= 2000
    request = outcome.overlays[0]
    assert request.kind == "quickReward"
    assert request.priority == "low"
    assert request.auto_close_ms == QUICK_REWARD_AUTO_CLOSE_MS


def test_corner_tile_has_no_effect() -> None:
    service = LandingService()
    tile = TileDef(id=9, kind="corner", title="Rest")

    outcome = service.resolve(_build_state(), 1, tile, rng=RNG(1), grant=_no_grant)

    assert outcome.base_rewards == {}
    assert outcome.overlays == []


def test_throne_rewards() -> None:
    assert LandingService.throne_rewards() == {"cash": THRONE_REWARD}
