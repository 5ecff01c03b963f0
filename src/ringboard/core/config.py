"""Engine configuration and per-user config persistence."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Timing and pool knobs. Durations are milliseconds unless named otherwise."""

    roll_delay_ms: int = 600
    hop_interval_ms: int = 350
    teleport_pause_ms: int = 1000
    settle_delay_ms: int = 200
    portal_transition_ms: int = 1200
    economy_tick_ms: int = 60_000
    autosave_debounce_ms: int = 2000
    landed_timeout_ms: int | None = None
    max_rolls: int = 50
    roll_regen_minutes: int = 30
    roll_regen_amount: int = 1
    daily_bonus_rolls: int = 10
    daily_reward_cooldown_minutes: int = 30
    overlay_history_limit: int = 50

    def with_overrides(self, **overrides: Any) -> "EngineConfig":
        return normalize_config({**asdict(self), **overrides})


_OPTIONAL_KEYS = {"landed_timeout_ms"}
_POSITIVE_KEYS = {"max_rolls", "roll_regen_minutes", "economy_tick_ms", "overlay_history_limit"}


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "Ringboard"
        return Path.home() / "Ringboard"
    return Path.home() / ".config" / "ringboard"


def get_default_config_path() -> Path:
    """Return the default per-user config path."""
    return get_user_data_dir() / "config.json"


def get_save_dir() -> Path:
    """Return the per-user save directory."""
    return get_user_data_dir() / "saves"


def _normalize_value(key: str, value: object, default: int | None) -> int | None:
    if value is None and key in _OPTIONAL_KEYS:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    as_int = int(value)
    if as_int < 0:
        return default
    if as_int == 0 and key in _POSITIVE_KEYS:
        return default
    return as_int


def normalize_config(raw: Mapping[str, object]) -> EngineConfig:
    """Build an EngineConfig, replacing each invalid key with its default."""
    defaults = EngineConfig()
    values: Dict[str, int | None] = {}
    for field_def in fields(EngineConfig):
        if field_def.name not in raw:
            continue
        default = getattr(defaults, field_def.name)
        values[field_def.name] = _normalize_value(field_def.name, raw[field_def.name], default)
    return replace(defaults, **values)


def load_config(path: Path | None = None) -> EngineConfig:
    """Load config from disk or return defaults."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return EngineConfig()
    except Exception:
        logger.warning("config_unreadable path=%s", config_path)
        return EngineConfig()
    if not isinstance(raw, dict):
        logger.warning("config_not_object path=%s", config_path)
        return EngineConfig()
    return normalize_config(raw)


def save_config(config: EngineConfig, path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = asdict(normalize_config(asdict(config)))
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
