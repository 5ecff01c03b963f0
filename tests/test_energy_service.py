from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ringboard.core.config import EngineConfig
from ringboard.core.context import GameContext
from ringboard.core.rng import RNG
from ringboard.domain.state import GameState
from ringboard.services.energy_service import RollPoolEmptyEvent, RollPoolService, RollsGrantedEvent


def _build_pool(rolls: int, **overrides) -> tuple[RollPoolService, GameState, GameContext]:
    context = GameContext.manual(config=EngineConfig().with_overrides(**overrides))
    state = GameState(seed=3, rng=RNG(3), rolls=rolls)
    return RollPoolService(context, state), state, context


def test_consume_spends_one_roll() -> None:
    pool, state, _ = _build_pool(5)

    assert pool.consume() is True
    assert state.rolls == 4


def test_consume_on_empty_pool_publishes_event() -> None:
    pool, state, context = _build_pool(0)

    assert pool.consume() is False
    assert state.rolls == 0
    assert len(context.events.history_of(RollPoolEmptyEvent)) == 1


def test_grant_respects_capacity() -> None:
    pool, state, context = _build_pool(48, max_rolls=50)

    assert pool.grant(5, source="test") == 2
    assert state.rolls == 50
    event = context.events.history_of(RollsGrantedEvent)[-1]
    assert (event.amount, event.total, event.source) == (2, 50, "test")


def test_regen_counts_whole_intervals_from_first_spend() -> None:
    pool, state, context = _build_pool(50, max_rolls=50, roll_regen_minutes=30)
    pool.consume()
    pool.consume()
    assert state.rolls == 48

    context.clock.advance(45 * 60_000)
    assert pool.regenerate() == 1
    assert state.rolls == 49
    assert pool.minutes_until_next_regen() == 15

    context.clock.advance(15 * 60_000)
    assert pool.regenerate() == 1
    assert state.rolls == 50
    assert pool.regenerate() == 0


def test_regen_never_exceeds_capacity() -> None:
    pool, state, context = _build_pool(50, max_rolls=50, roll_regen_minutes=30)
    pool.consume()

    context.clock.advance(10 * 60 * 60_000)

    assert pool.regenerate() == 1
    assert state.rolls == 50


def test_daily_bonus_once_per_utc_day_and_may_exceed_cap() -> None:
    pool, state, context = _build_pool(50, max_rolls=50, daily_bonus_rolls=10)

    assert pool.claim_daily_bonus(extra=2) == 12
    assert state.rolls == 62
    assert pool.claim_daily_bonus() == 0

    context.clock.set(datetime(2024, 1, 2, 0, 0, 1, tzinfo=timezone.utc))
    assert pool.can_claim_daily() is True
    assert pool.claim_daily_bonus() == 10
    assert state.last_daily_claim == datetime(2024, 1, 2, tzinfo=timezone.utc).date()


def test_minutes_until_regen_zero_when_full() -> None:
    pool, _, context = _build_pool(50, max_rolls=50)
    context.clock.advance(timedelta(minutes=5).total_seconds() * 1000)

    assert pool.minutes_until_next_regen() == 0.0
