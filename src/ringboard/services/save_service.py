"""Serialization helpers for game snapshots."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping

from ringboard.core.rng import RNG, RNGStatePayload
from ringboard.core.types import RING_HISTORY_REASONS
from ringboard.domain.defs import BoardTopology
from ringboard.domain.dice import DiceRoll
from ringboard.domain.economy import EconomyState, EconomyWindow, ThrottleState, WINDOW_LABELS
from ringboard.domain.portfolio import Holding
from ringboard.domain.state import GameState
from ringboard.services.errors import SaveLoadError

SavePayload = Dict[str, Any]


class SaveService:
    """Converts runtime state to/from a validated, versioned payload."""

    SAVE_VERSION = 1

    def __init__(self, *, topology: BoardTopology) -> None:
        self._topology = topology

    def serialize(self, state: GameState, *, now: datetime | None = None) -> SavePayload:
        """Return a JSON-serializable payload for persistence."""
        return {
            "save_version": self.SAVE_VERSION,
            "metadata": self._build_metadata(state, now or datetime.now(timezone.utc)),
            "rng": state.rng.export_state(),
            "state": self._serialize_state(state),
            "economy": self._serialize_economy(state.economy),
        }

    def deserialize(self, payload: Mapping[str, Any]) -> GameState:
        """Rehydrate a GameState + RNG from a persisted payload."""
        if not isinstance(payload, Mapping):
            raise SaveLoadError("Save data must be a JSON object.")
        if payload.get("save_version") != self.SAVE_VERSION:
            raise SaveLoadError("Save format is not compatible with this version.")
        rng_payload = payload.get("rng")
        state_payload = payload.get("state")
        economy_payload = payload.get("economy")
        if not isinstance(rng_payload, Mapping) or not isinstance(state_payload, Mapping):
            raise SaveLoadError("Save data is missing required sections.")

        seed = self._require_int(state_payload.get("seed"), "state.seed")
        rng = RNG(seed)
        try:
            rng.restore_state(self._coerce_rng_payload(rng_payload))
        except ValueError as exc:
            raise SaveLoadError(f"Invalid RNG state: {exc}") from exc

        ring = self._require_int(state_payload.get("current_ring"), "state.current_ring")
        position = self._require_int(state_payload.get("position"), "state.position")
        if self._topology.tile(ring, position) is None:
            raise SaveLoadError(f"Saved position {ring}:{position} is not on the board.")

        state = GameState(seed=seed, rng=rng, position=position, current_ring=ring)
        for kind in ("cash", "stars", "coins", "xp", "rolls"):
            setattr(state, kind, self._coerce_non_negative_int(state_payload.get(kind), f"state.{kind}", default=0))
        state.holdings = self._coerce_holdings(state_payload.get("holdings"))
        state.shop_upgrades = set(self._coerce_str_list(state_payload.get("shop_upgrades"), "state.shop_upgrades"))
        for roll in self._coerce_roll_history(state_payload.get("roll_history")):
            state.roll_history.append(roll)
        self._restore_ring_history(state, state_payload.get("ring_history"))
        state.last_roll_regen_at = self._coerce_optional_datetime(
            state_payload.get("last_roll_regen_at"), "state.last_roll_regen_at"
        )
        state.last_daily_claim = self._coerce_optional_date(
            state_payload.get("last_daily_claim"), "state.last_daily_claim"
        )
        if economy_payload is not None:
            state.economy = self._deserialize_economy(economy_payload)
        return state

    def _build_metadata(self, state: GameState, now: datetime) -> Dict[str, Any]:
        return {
            "seed": state.seed,
            "current_ring": state.current_ring,
            "position": state.position,
            "cash": state.cash,
            "net_worth": state.net_worth,
            "saved_at": now.isoformat(),
        }

    def _serialize_state(self, state: GameState) -> Dict[str, Any]:
        return {
            "seed": state.seed,
            "position": state.position,
            "current_ring": state.current_ring,
            "cash": state.cash,
            "stars": state.stars,
            "coins": state.coins,
            "xp": state.xp,
            "rolls": state.rolls,
            "holdings": [
                {"ticker": h.ticker, "category": h.category, "shares": h.shares, "price": h.price}
                for h in state.holdings
            ],
            "shop_upgrades": sorted(state.shop_upgrades),
            "roll_history": [[roll.die1, roll.die2] for roll in state.roll_history],
            "ring_history": [
                {
                    "from_ring": entry.from_ring,
                    "to_ring": entry.to_ring,
                    "tile_id": entry.tile_id,
                    "reason": entry.reason,
                    "at": entry.at.isoformat(),
                }
                for entry in state.ring_history
            ],
            "last_roll_regen_at": _iso(state.last_roll_regen_at),
            "last_daily_claim": state.last_daily_claim.isoformat() if state.last_daily_claim else None,
        }

    def _serialize_economy(self, economy: EconomyState) -> Dict[str, Any]:
        throttle = economy.throttle
        return {
            "momentum": economy.momentum,
            "momentum_floor": economy.momentum_floor,
            "momentum_peak": economy.momentum_peak,
            "leverage_level": economy.leverage_level,
            "last_net_worth": economy.last_net_worth,
            "last_decay_at": _iso(economy.last_decay_at),
            "last_window_ended_at": _iso(economy.last_window_ended_at),
            "window_counter": economy.window_counter,
            "active_windows": [
                {
                    "id": window.id,
                    "type": window.type,
                    "label": window.label,
                    "start_at": window.start_at.isoformat(),
                    "end_at": window.end_at.isoformat(),
                    "stars_multiplier": window.stars_multiplier,
                    "xp_multiplier": window.xp_multiplier,
                    "trigger_momentum": window.trigger_momentum,
                    "trigger_leverage": window.trigger_leverage,
                }
                for window in economy.active_windows
            ],
            "throttle": {
                "active": throttle.active,
                "factor": throttle.factor,
                "applied_at": _iso(throttle.applied_at),
                "recover_at": _iso(throttle.recover_at),
            },
        }

    def _deserialize_economy(self, payload: Any) -> EconomyState:
        if not isinstance(payload, Mapping):
            raise SaveLoadError("economy must be an object.")
        economy = EconomyState(
            momentum=self._require_number(payload.get("momentum", 0), "economy.momentum"),
            momentum_floor=self._require_number(payload.get("momentum_floor", 0), "economy.momentum_floor"),
            momentum_peak=self._require_number(payload.get("momentum_peak", 0), "economy.momentum_peak"),
            leverage_level=self._coerce_non_negative_int(
                payload.get("leverage_level"), "economy.leverage_level", default=0
            ),
            window_counter=self._coerce_non_negative_int(
                payload.get("window_counter"), "economy.window_counter", default=0
            ),
        )
        last_net_worth = payload.get("last_net_worth")
        economy.last_net_worth = None if last_net_worth is None else self._require_int(
            last_net_worth, "economy.last_net_worth"
        )
        economy.last_decay_at = self._coerce_optional_datetime(payload.get("last_decay_at"), "economy.last_decay_at")
        economy.last_window_ended_at = self._coerce_optional_datetime(
            payload.get("last_window_ended_at"), "economy.last_window_ended_at"
        )
        for index, raw in enumerate(payload.get("active_windows") or []):
            economy.active_windows.append(self._coerce_window(raw, f"economy.active_windows[{index}]"))
        throttle_raw = payload.get("throttle")
        if throttle_raw is not None:
            if not isinstance(throttle_raw, Mapping):
                raise SaveLoadError("economy.throttle must be an object.")
            economy.throttle = ThrottleState(
                active=bool(throttle_raw.get("active", False)),
                factor=self._require_number(throttle_raw.get("factor", 1.0), "economy.throttle.factor"),
                applied_at=self._coerce_optional_datetime(
                    throttle_raw.get("applied_at"), "economy.throttle.applied_at"
                ),
                recover_at=self._coerce_optional_datetime(
                    throttle_raw.get("recover_at"), "economy.throttle.recover_at"
                ),
            )
        return economy

    def _coerce_window(self, raw: Any, context: str) -> EconomyWindow:
        if not isinstance(raw, Mapping):
            raise SaveLoadError(f"{context} must be an object.")
        window_type = raw.get("type")
        if window_type not in WINDOW_LABELS:
            raise SaveLoadError(f"{context}.type is invalid: {window_type}")
        start_at = self._coerce_optional_datetime(raw.get("start_at"), f"{context}.start_at")
        end_at = self._coerce_optional_datetime(raw.get("end_at"), f"{context}.end_at")
        if start_at is None or end_at is None:
            raise SaveLoadError(f"{context} is missing its time range.")
        return EconomyWindow(
            id=self._require_str(raw.get("id"), f"{context}.id"),
            type=window_type,
            label=self._require_str(raw.get("label", WINDOW_LABELS[window_type]), f"{context}.label"),
            start_at=start_at,
            end_at=end_at,
            stars_multiplier=self._require_number(raw.get("stars_multiplier", 1), f"{context}.stars_multiplier"),
            xp_multiplier=self._require_number(raw.get("xp_multiplier", 1), f"{context}.xp_multiplier"),
            trigger_momentum=self._require_number(raw.get("trigger_momentum", 0), f"{context}.trigger_momentum"),
            trigger_leverage=self._coerce_non_negative_int(
                raw.get("trigger_leverage"), f"{context}.trigger_leverage", default=0
            ),
        )

    def _coerce_rng_payload(self, payload: Mapping[str, Any]) -> RNGStatePayload:
        version = self._require_int(payload.get("version"), "rng.version")
        state_values = payload.get("state")
        if not isinstance(state_values, list):
            raise SaveLoadError("Invalid RNG state payload.")
        return {"version": version, "state": state_values, "gauss": payload.get("gauss")}

    def _coerce_holdings(self, value: Any) -> List[Holding]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise SaveLoadError("state.holdings must be a list.")
        holdings: List[Holding] = []
        for index, raw in enumerate(value):
            context = f"state.holdings[{index}]"
            if not isinstance(raw, Mapping):
                raise SaveLoadError(f"{context} must be an object.")
            holdings.append(
                Holding(
                    ticker=self._require_str(raw.get("ticker"), f"{context}.ticker"),
                    category=self._require_str(raw.get("category"), f"{context}.category"),
                    shares=self._coerce_non_negative_int(raw.get("shares"), f"{context}.shares", default=0),
                    price=self._require_number(raw.get("price"), f"{context}.price"),
                )
            )
        return holdings

    def _coerce_roll_history(self, value: Any) -> List[DiceRoll]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise SaveLoadError("state.roll_history must be a list.")
        rolls: List[DiceRoll] = []
        for index, raw in enumerate(value):
            if (
                not isinstance(raw, list)
                or len(raw) != 2
                or not all(isinstance(die, int) and 1 <= die <= 6 for die in raw)
            ):
                raise SaveLoadError(f"state.roll_history[{index}] must be two dice values.")
            rolls.append(DiceRoll(die1=raw[0], die2=raw[1]))
        return rolls

    def _restore_ring_history(self, state: GameState, value: Any) -> None:
        if value is None:
            return
        if not isinstance(value, list):
            raise SaveLoadError("state.ring_history must be a list.")
        for index, raw in enumerate(value):
            context = f"state.ring_history[{index}]"
            if not isinstance(raw, Mapping):
                raise SaveLoadError(f"{context} must be an object.")
            reason = raw.get("reason")
            if reason not in RING_HISTORY_REASONS:
                raise SaveLoadError(f"{context}.reason is invalid: {reason}")
            from_ring = raw.get("from_ring")
            at = self._coerce_optional_datetime(raw.get("at"), f"{context}.at")
            if at is None:
                raise SaveLoadError(f"{context}.at is required.")
            state.record_ring_change(
                None if from_ring is None else self._require_int(from_ring, f"{context}.from_ring"),
                self._require_int(raw.get("to_ring"), f"{context}.to_ring"),
                self._require_int(raw.get("tile_id"), f"{context}.tile_id"),
                reason,
                at,
            )

    def _coerce_str_list(self, value: Any, context: str) -> List[str]:
        if value is None:
            return []
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise SaveLoadError(f"{context} must be a list of strings.")
        return list(value)

    def _coerce_optional_datetime(self, value: Any, context: str) -> datetime | None:
        if value is None:
            return None
        text = self._require_str(value, context)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise SaveLoadError(f"{context} is not an ISO timestamp.") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _coerce_optional_date(self, value: Any, context: str) -> date | None:
        if value is None:
            return None
        text = self._require_str(value, context)
        try:
            return date.fromisoformat(text)
        except ValueError as exc:
            raise SaveLoadError(f"{context} is not an ISO date.") from exc

    @staticmethod
    def _require_str(value: Any, context: str) -> str:
        if not isinstance(value, str):
            raise SaveLoadError(f"{context} must be a string.")
        return value

    @staticmethod
    def _require_int(value: Any, context: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise SaveLoadError(f"{context} must be an integer.")
        return value

    @staticmethod
    def _require_number(value: Any, context: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SaveLoadError(f"{context} must be a number.")
        return float(value)

    def _coerce_non_negative_int(self, value: Any, context: str, *, default: int) -> int:
        if value is None:
            return default
        value_int = self._require_int(value, context)
        if value_int < 0:
            raise SaveLoadError(f"{context} must be a non-negative integer.")
        return value_int


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
