"""Explicit runtime context handed to every engine component."""
from __future__ import annotations

from dataclasses import dataclass

from ringboard.core.clock import Clock, ManualClock, SystemClock
from ringboard.core.config import EngineConfig
from ringboard.core.events import EventBus
from ringboard.core.rng import RNG
from ringboard.core.timers import TimerScheduler


@dataclass(slots=True)
class GameContext:
    """Clock, timers, event bus, rng and config shared by one game session."""

    config: EngineConfig
    clock: Clock
    timers: TimerScheduler
    events: EventBus
    rng: RNG

    @classmethod
    def create(
        cls,
        *,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
        seed: int = 0,
    ) -> "GameContext":
        clock = clock or SystemClock()
        return cls(
            config=config or EngineConfig(),
            clock=clock,
            timers=TimerScheduler(clock),
            events=EventBus(),
            rng=RNG(seed),
        )

    @classmethod
    def manual(cls, *, config: EngineConfig | None = None, seed: int = 0) -> "GameContext":
        """Context on a ManualClock, for tests and deterministic replays."""
        return cls.create(config=config, clock=ManualClock(), seed=seed)
