"""Session wiring: builds every engine component around one GameState."""
from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Any, Mapping, Protocol, Sequence

from ringboard.core.context import GameContext
from ringboard.core.rng import RNG
from ringboard.domain.defs import BoardTopology, TierDef
from ringboard.domain.state import START_RING, START_TILE, GameState
from ringboard.domain.tiers import active_benefits
from ringboard.services.economy_service import EconomyRegulator
from ringboard.services.energy_service import RollPoolService, RollsGrantedEvent
from ringboard.services.errors import SaveLoadError
from ringboard.services.landing_service import LandingService, StockPurchaseCallback
from ringboard.services.overlay_service import OverlayRequest, OverlayScheduler
from ringboard.services.reward_service import RewardComposer
from ringboard.services.save_service import SaveService
from ringboard.services.turn_service import RewardsAppliedEvent, TurnCompletedEvent, TurnStateMachine

logger = logging.getLogger(__name__)

SESSION_TIMER_GROUP = "session"
DAILY_REWARD_KIND = "dailyReward"
_MAX_RANDOM_SEED = 2**31 - 1


class PersistenceBackend(Protocol):
    def load(self) -> Mapping[str, Any] | None:
        ...

    def save(self, snapshot: Mapping[str, Any]) -> None:
        ...


class GameSession:
    """Owns the component graph for one running game."""

    def __init__(
        self,
        context: GameContext,
        topology: BoardTopology,
        tiers: Sequence[TierDef] = (),
        persistence: PersistenceBackend | None = None,
        stock_purchase: StockPurchaseCallback | None = None,
    ) -> None:
        self._context = context
        self._topology = topology
        self._tiers = tuple(tiers)
        self._persistence = persistence
        self._stock_purchase = stock_purchase
        self._save_service = SaveService(topology=topology)
        self._state: GameState | None = None
        self._economy: EconomyRegulator | None = None
        self._overlays: OverlayScheduler | None = None
        self._composer: RewardComposer | None = None
        self._roll_pool: RollPoolService | None = None
        self._turn: TurnStateMachine | None = None
        self._unsubscribe = None

    # ------------------------------------------------------------------ Views

    @property
    def context(self) -> GameContext:
        return self._context

    @property
    def state(self) -> GameState:
        return self._require(self._state)

    @property
    def economy(self) -> EconomyRegulator:
        return self._require(self._economy)

    @property
    def overlays(self) -> OverlayScheduler:
        return self._require(self._overlays)

    @property
    def composer(self) -> RewardComposer:
        return self._require(self._composer)

    @property
    def roll_pool(self) -> RollPoolService:
        return self._require(self._roll_pool)

    @property
    def turn(self) -> TurnStateMachine:
        return self._require(self._turn)

    @property
    def started(self) -> bool:
        return self._state is not None

    # --------------------------------------------------------------- Commands

    def start(self, seed: int | None = None) -> GameState:
        """Restore the persisted game, or begin a fresh one."""
        if self._state is not None:
            raise RuntimeError("Session already started.")
        state = self._load_snapshot()
        if state is None:
            state = self._new_game(seed if seed is not None else secrets.randbelow(_MAX_RANDOM_SEED))
        self._context.rng = state.rng
        self._state = state

        context = self._context
        self._economy = EconomyRegulator(context, state.economy)
        self._overlays = OverlayScheduler(context)
        self._composer = RewardComposer(economy=self._economy, topology=self._topology)
        self._roll_pool = RollPoolService(context, state)
        self._turn = TurnStateMachine(
            context=context,
            state=state,
            topology=self._topology,
            composer=self._composer,
            economy=self._economy,
            overlays=self._overlays,
            roll_pool=self._roll_pool,
            landing=LandingService(stock_purchase=self._stock_purchase),
            tiers=self._tiers,
        )
        self._unsubscribe = context.events.subscribe(self._on_event)
        if state.economy.last_net_worth is None:
            self._economy.on_net_worth_change(state.net_worth)
        self._economy.schedule_ticks()
        logger.info(
            "session_started seed=%s ring=%s tile=%s rolls=%s",
            state.seed,
            state.current_ring,
            state.position,
            state.rolls,
        )
        return state

    def on_foreground(self) -> None:
        """Resync after the app was away: drop any half-played turn and catch up timers."""
        now = self._context.clock.now()
        self.turn.abort_turn("foreground")
        self.roll_pool.regenerate(now)
        self.economy.tick(now)
        self._offer_daily_reward(now)
        self.request_save()

    def request_save(self) -> None:
        """Debounce a save so bursts of changes write once."""
        if self._persistence is None or self._state is None:
            return
        timers = self._context.timers
        timers.cancel_group(SESSION_TIMER_GROUP)
        timers.schedule(
            self._context.config.autosave_debounce_ms,
            self.save_now,
            group=SESSION_TIMER_GROUP,
            label="autosave",
        )

    def save_now(self) -> bool:
        if self._persistence is None or self._state is None:
            return False
        self._context.timers.cancel_group(SESSION_TIMER_GROUP)
        try:
            snapshot = self._save_service.serialize(self._state, now=self._context.clock.now())
            self._persistence.save(snapshot)
        except Exception:
            logger.exception("save_failed")
            return False
        logger.debug("session_saved")
        return True

    def shutdown(self) -> None:
        """Flush a pending save and stop every timer."""
        if self._context.timers.pending(SESSION_TIMER_GROUP):
            self.save_now()
        if self._turn is not None:
            self._turn.close()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._context.timers.cancel_all()
        logger.info("session_shutdown")

    # ---------------------------------------------------------------- Helpers

    def _load_snapshot(self) -> GameState | None:
        if self._persistence is None:
            return None
        try:
            payload = self._persistence.load()
        except Exception:
            logger.exception("snapshot_load_failed")
            return None
        if payload is None:
            return None
        try:
            return self._save_service.deserialize(payload)
        except SaveLoadError as exc:
            logger.warning("snapshot_invalid reason=%s", exc)
            return None

    def _new_game(self, seed: int) -> GameState:
        state = GameState(seed=seed, rng=RNG(seed), position=START_TILE, current_ring=START_RING)
        state.rolls = self._context.config.max_rolls
        state.record_ring_change(None, START_RING, START_TILE, "start", self._context.clock.now())
        logger.info("new_game seed=%s", seed)
        return state

    def _offer_daily_reward(self, now: datetime) -> None:
        roll_pool = self.roll_pool
        overlays = self.overlays
        if not roll_pool.can_claim_daily(now):
            return
        cooldown_ms = self._context.config.daily_reward_cooldown_minutes * 60_000
        if overlays.was_recently_shown(DAILY_REWARD_KIND, cooldown_ms):
            return
        extra = 0
        if self._tiers:
            extra = int(active_benefits(self._tiers, self.state.net_worth).get("daily_rolls", 0))

        def _claim() -> int:
            return roll_pool.claim_daily_bonus(self._context.clock.now(), extra=extra)

        overlays.show(
            OverlayRequest(
                kind=DAILY_REWARD_KIND,
                priority="normal",
                surface={"rolls": self._context.config.daily_bonus_rolls + extra, "claim": _claim},
            )
        )

    def _on_event(self, event: object) -> None:
        if isinstance(event, (TurnCompletedEvent, RewardsAppliedEvent, RollsGrantedEvent)):
            self.request_save()

    @staticmethod
    def _require(component: Any) -> Any:
        if component is None:
            raise RuntimeError("Session has not been started.")
        return component
