from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from ringboard.core.rng import RNG
from ringboard.domain.dice import DiceRoll
from ringboard.domain.economy import EconomyWindow
from ringboard.domain.portfolio import Holding
from ringboard.domain.state import GameState
from ringboard.services.errors import SaveLoadError
from ringboard.services.save_service import SaveService
from tests.helpers.builders import build_two_ring_board

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _build_state() -> GameState:
    state = GameState(seed=77, rng=RNG(77), position=4, current_ring=2)
    state.cash = 12_345
    state.stars = 40
    state.rolls = 17
    state.holdings = [Holding("AAA", "tech", 3, 12.5)]
    state.shop_upgrades = {"star_magnet"}
    state.roll_history.append(DiceRoll(3, 4))
    state.record_ring_change(None, 1, 0, "start", NOW - timedelta(hours=1))
    state.record_ring_change(1, 2, 0, "portal", NOW)
    state.last_roll_regen_at = NOW
    state.last_daily_claim = date(2024, 3, 1)
    economy = state.economy
    economy.momentum = 42
    economy.leverage_level = 2
    economy.last_net_worth = 12_000
    economy.window_counter = 1
    economy.active_windows.append(
        EconomyWindow(
            id="window-1",
            type="breakout_run",
            label="Breakout Run",
            start_at=NOW,
            end_at=NOW + timedelta(minutes=10),
            stars_multiplier=1.5,
            xp_multiplier=1.2,
        )
    )
    economy.throttle.active = True
    economy.throttle.factor = 0.7
    economy.throttle.applied_at = NOW
    economy.throttle.recover_at = NOW + timedelta(minutes=12)
    return state


def test_serialized_payload_survives_json_and_restores_state() -> None:
    service = SaveService(topology=build_two_ring_board())
    state = _build_state()
    state.rng.randint(1, 6)

    payload = json.loads(json.dumps(service.serialize(state, now=NOW)))
    restored = service.deserialize(payload)

    assert payload["save_version"] == SaveService.SAVE_VERSION
    assert payload["metadata"]["net_worth"] == state.net_worth
    assert (restored.current_ring, restored.position) == (2, 4)
    assert (restored.cash, restored.stars, restored.rolls) == (12_345, 40, 17)
    assert restored.holdings == state.holdings
    assert restored.shop_upgrades == {"star_magnet"}
    assert list(restored.roll_history) == [DiceRoll(3, 4)]
    assert [entry.reason for entry in restored.ring_history] == ["start", "portal"]
    assert restored.last_roll_regen_at == NOW
    assert restored.last_daily_claim == date(2024, 3, 1)
    assert restored.economy.active_windows[0].end_at == NOW + timedelta(minutes=10)
    assert restored.economy.throttle.factor == 0.7
    assert restored.economy.leverage_level == 2
    assert restored.rng.randint(1, 1_000_000) == state.rng.randint(1, 1_000_000)


def test_rejects_other_save_versions() -> None:
    service = SaveService(topology=build_two_ring_board())
    payload = service.serialize(_build_state(), now=NOW)
    payload["save_version"] = 99

    with pytest.raises(SaveLoadError):
        service.deserialize(payload)


def test_rejects_position_off_the_board() -> None:
    service = SaveService(topology=build_two_ring_board())
    payload = service.serialize(_build_state(), now=NOW)
    payload["state"]["position"] = 500

    with pytest.raises(SaveLoadError, match="not on the board"):
        service.deserialize(payload)


def test_rejects_bad_field_types() -> None:
    service = SaveService(topology=build_two_ring_board())
    payload = service.serialize(_build_state(), now=NOW)
    payload["state"]["cash"] = "lots"

    with pytest.raises(SaveLoadError):
        service.deserialize(payload)


def test_rejects_unknown_ring_history_reason() -> None:
    service = SaveService(topology=build_two_ring_board())
    payload = service.serialize(_build_state(), now=NOW)
    payload["state"]["ring_history"][0]["reason"] = "teleport"

    with pytest.raises(SaveLoadError):
        service.deserialize(payload)


def test_rejects_non_mapping_payload() -> None:
    service = SaveService(topology=build_two_ring_board())

    with pytest.raises(SaveLoadError):
        service.deserialize([])  # type: ignore[arg-type]


def test_missing_economy_section_uses_fresh_economy() -> None:
    service = SaveService(topology=build_two_ring_board())
    payload = service.serialize(_build_state(), now=NOW)
    del payload["economy"]

    restored = service.deserialize(payload)

    assert restored.economy.momentum == 0
    assert restored.economy.active_windows == []
