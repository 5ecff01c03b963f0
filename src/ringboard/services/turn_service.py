"""Turn lifecycle: idle -> rolling -> moving -> landed -> idle.

Every wait is a timer on the shared TimerScheduler, so the whole turn runs
under whatever drives the scheduler: a RealtimeDriver in the CLI, a
ManualClock in tests. Turn timers live in the "turn" group and the portal
re-sync sequence in the "portal" group so abort_turn can drop both.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Sequence, Set

from ringboard.core.context import GameContext
from ringboard.core.timers import TimerHandle
from ringboard.core.types import RewardKind, RingHistoryReason, TurnPhase
from ringboard.domain.defs import BoardTopology, TierDef
from ringboard.domain.dice import DiceRoll, doubles_bonus, roll_dice
from ringboard.domain.movement import MovementResult, MovementStep, resolve_movement
from ringboard.domain.state import GameState
from ringboard.domain.tiers import current_tier
from ringboard.services.economy_service import EconomyRegulator
from ringboard.services.energy_service import RollPoolService
from ringboard.services.landing_service import LandingService
from ringboard.services.overlay_service import OverlayClosedEvent, OverlayRequest, OverlayScheduler
from ringboard.services.reward_service import RewardComposer, build_reward_context, scale_for_roll

logger = logging.getLogger(__name__)

TURN_TIMER_GROUP = "turn"
PORTAL_TIMER_GROUP = "portal"


@dataclass(slots=True)
class TurnEvent:
    """Base class for turn events."""


@dataclass(slots=True)
class NotificationEvent(TurnEvent):
    message: str
    level: str = "info"


@dataclass(slots=True)
class RollRejectedEvent(TurnEvent):
    reason: str
    phase: TurnPhase


@dataclass(slots=True)
class RollStartedEvent(TurnEvent):
    dice: DiceRoll
    multiplier: int
    rolls_left: int


@dataclass(slots=True)
class MovementStartedEvent(TurnEvent):
    movement: MovementResult


@dataclass(slots=True)
class HopEvent(TurnEvent):
    ring: int
    tile_id: int
    hops_left: int


@dataclass(slots=True)
class TeleportFlashEvent(TurnEvent):
    from_ring: int
    to_ring: int
    tile_id: int


@dataclass(slots=True)
class LandedEvent(TurnEvent):
    ring: int
    tile_id: int
    movement: MovementResult


@dataclass(slots=True)
class LandingFailedEvent(TurnEvent):
    ring: int
    tile_id: int


@dataclass(slots=True)
class RewardsAppliedEvent(TurnEvent):
    amounts: Dict[RewardKind, int]
    source: str
    net_worth: int


@dataclass(slots=True)
class TierUpEvent(TurnEvent):
    tier: int
    name: str


@dataclass(slots=True)
class PortalTransitionEvent(TurnEvent):
    from_ring: int
    to_ring: int
    tile_id: int
    reason: RingHistoryReason


@dataclass(slots=True)
class TurnCompletedEvent(TurnEvent):
    forced: bool = False


@dataclass(slots=True)
class TurnAbortedEvent(TurnEvent):
    previous_phase: TurnPhase
    reason: str


@dataclass(slots=True)
class RollOutcome:
    accepted: bool
    reason: str | None = None
    dice: DiceRoll | None = None
    multiplier: int = 1


@dataclass(slots=True)
class _TurnProgress:
    dice: DiceRoll
    multiplier: int
    movement: MovementResult | None = None
    pending_hops: Deque[MovementStep] = field(default_factory=deque)
    open_overlays: Set[str] = field(default_factory=set)
    portal_overlay_id: str | None = None


class TurnStateMachine:
    """Owns position, ring and phase. Rewards go through the RewardComposer."""

    def __init__(
        self,
        *,
        context: GameContext,
        state: GameState,
        topology: BoardTopology,
        composer: RewardComposer,
        economy: EconomyRegulator,
        overlays: OverlayScheduler,
        roll_pool: RollPoolService,
        landing: LandingService,
        tiers: Sequence[TierDef] = (),
    ) -> None:
        self._context = context
        self._state = state
        self._topology = topology
        self._composer = composer
        self._economy = economy
        self._overlays = overlays
        self._roll_pool = roll_pool
        self._landing = landing
        self._tiers = tuple(tiers)
        self._phase: TurnPhase = "idle"
        self._turn: _TurnProgress | None = None
        self._last_movement: MovementResult | None = None
        self._landed_guard: TimerHandle | None = None
        self._unsubscribe = context.events.subscribe(self._on_event)

    # ------------------------------------------------------------------ Views

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    @property
    def is_busy(self) -> bool:
        return self._phase != "idle"

    @property
    def last_movement(self) -> MovementResult | None:
        return self._last_movement

    # --------------------------------------------------------------- Commands

    def roll(self, multiplier: int = 1) -> RollOutcome:
        if self._phase != "idle":
            logger.info("roll_rejected reason=busy phase=%s", self._phase)
            self._publish(RollRejectedEvent(reason="busy", phase=self._phase))
            self._publish(NotificationEvent("Finish the current turn before rolling again.", "warning"))
            return RollOutcome(accepted=False, reason="busy")

        if not self._roll_pool.consume():
            logger.info("roll_rejected reason=no_rolls")
            self._overlays.show(
                OverlayRequest(
                    kind="outOfRolls",
                    priority="high",
                    surface={
                        "rolls": self._state.rolls,
                        "minutes_until_regen": self._roll_pool.minutes_until_next_regen(),
                        "grant": lambda count: self._roll_pool.grant(count, source="restock"),
                    },
                )
            )
            self._publish(RollRejectedEvent(reason="no_rolls", phase=self._phase))
            self._publish(NotificationEvent("Out of rolls.", "warning"))
            return RollOutcome(accepted=False, reason="no_rolls")

        applied_multiplier = self._economy.clamp_multiplier(multiplier)
        dice = roll_dice(self._state.rng)
        self._state.roll_history.append(dice)
        self._turn = _TurnProgress(dice=dice, multiplier=applied_multiplier)
        self._phase = "rolling"
        logger.info(
            "roll_started dice=%s+%s multiplier=%s rolls_left=%s",
            dice.die1,
            dice.die2,
            applied_multiplier,
            self._state.rolls,
        )
        self._publish(RollStartedEvent(dice=dice, multiplier=applied_multiplier, rolls_left=self._state.rolls))
        self._schedule(self._context.config.roll_delay_ms, self._begin_moving, "roll")
        return RollOutcome(accepted=True, dice=dice, multiplier=applied_multiplier)

    def abort_turn(self, reason: str = "abort") -> bool:
        """Drop every pending turn timer and return to idle. Returns False if already idle."""
        self._context.timers.cancel_group(TURN_TIMER_GROUP)
        self._context.timers.cancel_group(PORTAL_TIMER_GROUP)
        self._landed_guard = None
        previous = self._phase
        turn = self._turn
        self._phase = "idle"
        self._turn = None
        if turn is not None and turn.portal_overlay_id is not None:
            self._overlays.close(turn.portal_overlay_id, reason="turn_aborted")
        if previous == "idle":
            return False
        logger.info("turn_aborted phase=%s reason=%s", previous, reason)
        self._publish(TurnAbortedEvent(previous_phase=previous, reason=reason))
        return True

    def grant(self, kind: RewardKind, base_amount: int, source: str = "grant") -> int:
        """Compose and apply a single reward outside of the landing step."""
        context = build_reward_context(self._state, self._tiers, ring=self._state.current_ring)
        amount = self._composer.compose(base_amount, kind, context)
        self._apply_rewards({kind: amount}, source)
        return amount

    def jump_to(self, ring: int, tile_id: int, reason: RingHistoryReason = "jump") -> bool:
        if self._phase != "idle":
            logger.info("jump_rejected phase=%s", self._phase)
            return False
        if self._topology.tile(ring, tile_id) is None:
            logger.warning("jump_target_unknown ring=%s tile=%s", ring, tile_id)
            return False
        from_ring = self._state.current_ring
        self._state.current_ring = ring
        self._state.position = tile_id
        self._state.record_ring_change(from_ring, ring, tile_id, reason, self._context.clock.now())
        return True

    def close(self) -> None:
        self.abort_turn("shutdown")
        self._unsubscribe()

    # ------------------------------------------------------------- Transitions

    def _begin_moving(self) -> None:
        turn = self._turn
        if turn is None or self._phase != "rolling":
            return
        movement = resolve_movement(
            self._topology, self._state.current_ring, self._state.position, turn.dice.total
        )
        turn.movement = movement
        turn.pending_hops = deque(movement.path)
        self._last_movement = movement
        self._phase = "moving"
        self._publish(MovementStartedEvent(movement=movement))
        self._schedule_after_hop(self._context.config.hop_interval_ms)

    def _schedule_after_hop(self, delay_ms: int) -> None:
        turn = self._turn
        if turn is not None and turn.pending_hops:
            self._schedule(delay_ms, self._hop, "hop")
        else:
            self._schedule(self._context.config.settle_delay_ms, self._settle, "settle")

    def _hop(self) -> None:
        turn = self._turn
        if turn is None or self._phase != "moving" or not turn.pending_hops:
            return
        step = turn.pending_hops.popleft()
        from_ring = self._state.current_ring
        self._state.current_ring = step.ring
        self._state.position = step.tile_id
        logger.debug("hop ring=%s tile=%s left=%s", step.ring, step.tile_id, len(turn.pending_hops))
        self._publish(HopEvent(ring=step.ring, tile_id=step.tile_id, hops_left=len(turn.pending_hops)))
        if step.ring == from_ring:
            self._schedule_after_hop(self._context.config.hop_interval_ms)
            return
        assert turn.movement is not None
        reason: RingHistoryReason = "reset" if turn.movement.portal_direction == "throne" else "move"
        self._state.record_ring_change(from_ring, step.ring, step.tile_id, reason, self._context.clock.now())
        logger.info("teleport from_ring=%s to_ring=%s tile=%s", from_ring, step.ring, step.tile_id)
        self._publish(TeleportFlashEvent(from_ring=from_ring, to_ring=step.ring, tile_id=step.tile_id))
        if turn.pending_hops:
            self._schedule(self._context.config.teleport_pause_ms, self._hop, "teleport_pause")
        else:
            self._schedule(self._context.config.teleport_pause_ms, self._settle, "teleport_pause")

    def _settle(self) -> None:
        turn = self._turn
        if turn is None or self._phase != "moving" or turn.movement is None:
            return
        self._phase = "landed"
        ring, tile_id = self._state.current_ring, self._state.position
        logger.info("landed ring=%s tile=%s", ring, tile_id)
        self._publish(LandedEvent(ring=ring, tile_id=tile_id, movement=turn.movement))
        self._arm_landed_guard()
        if not self._run_landing(turn):
            return
        if turn.movement.landed_exactly_on_portal and turn.movement.portal_target is not None:
            self._start_portal_sequence(turn)
        self._check_return_to_idle()

    def _run_landing(self, turn: _TurnProgress) -> bool:
        ring, tile_id = self._state.current_ring, self._state.position
        tile = self._topology.tile(ring, tile_id)
        if tile is None:
            # Fail open: no effect, and the phase stays where it is.
            logger.error("landing_tile_missing ring=%s tile=%s", ring, tile_id)
            self._publish(LandingFailedEvent(ring=ring, tile_id=tile_id))
            return False

        outcome = self._landing.resolve(self._state, ring, tile, rng=self._state.rng, grant=self.grant)
        base: Dict[RewardKind, float] = dict(outcome.base_rewards)
        for kind, amount in doubles_bonus(turn.dice).items():
            base[kind] = base.get(kind, 0) + amount
        assert turn.movement is not None
        if turn.movement.portal_direction == "throne":
            for kind, amount in self._landing.throne_rewards().items():
                base[kind] = base.get(kind, 0) + amount
        base = scale_for_roll(base, turn.multiplier)

        tier_before = current_tier(self._tiers, self._state.net_worth) if self._tiers else None
        context = build_reward_context(self._state, self._tiers, ring=ring)
        self._apply_rewards(self._composer.compose_all(base, context), "landing")
        if tier_before is not None:
            tier_after = current_tier(self._tiers, self._state.net_worth)
            if tier_after.tier > tier_before.tier:
                logger.info("tier_up tier=%s name=%s", tier_after.tier, tier_after.name)
                self._publish(TierUpEvent(tier=tier_after.tier, name=tier_after.name))
                self._open_tracked(
                    turn,
                    OverlayRequest(
                        kind="tierUp",
                        priority="high",
                        surface={"tier": tier_after.tier, "name": tier_after.name},
                    ),
                )
        for request in outcome.overlays:
            self._open_tracked(turn, request)
        return True

    def _start_portal_sequence(self, turn: _TurnProgress) -> None:
        movement = turn.movement
        assert movement is not None and movement.portal_target is not None
        target = movement.portal_target
        turn.portal_overlay_id = self._open_tracked(
            turn,
            OverlayRequest(
                kind="portal",
                priority="high",
                dismissible=False,
                surface={
                    "direction": movement.portal_direction,
                    "from_ring": self._state.current_ring,
                    "to_ring": target.ring,
                },
            ),
        )
        self._context.timers.schedule(
            self._context.config.portal_transition_ms,
            lambda: self._complete_portal(turn, target),
            group=PORTAL_TIMER_GROUP,
            label="portal_transition",
        )

    def _complete_portal(self, turn: _TurnProgress, target: MovementStep) -> None:
        if self._turn is not turn:
            return
        assert turn.movement is not None
        from_ring = self._state.current_ring
        reason: RingHistoryReason = "reset" if turn.movement.portal_direction == "throne" else "portal"
        self._state.current_ring = target.ring
        self._state.position = target.tile_id
        self._state.record_ring_change(from_ring, target.ring, target.tile_id, reason, self._context.clock.now())
        logger.info("portal_transition from_ring=%s to_ring=%s reason=%s", from_ring, target.ring, reason)
        self._publish(
            PortalTransitionEvent(from_ring=from_ring, to_ring=target.ring, tile_id=target.tile_id, reason=reason)
        )
        if turn.portal_overlay_id is not None:
            self._overlays.close(turn.portal_overlay_id, reason="portal_complete")

    def _check_return_to_idle(self) -> None:
        turn = self._turn
        if self._phase != "landed" or turn is None:
            return
        if self._overlays.has_visible or turn.open_overlays:
            return
        self._finish_turn(forced=False)

    def _finish_turn(self, *, forced: bool) -> None:
        self._context.timers.cancel(self._landed_guard)
        self._landed_guard = None
        self._phase = "idle"
        self._turn = None
        logger.info("turn_completed forced=%s", forced)
        self._publish(TurnCompletedEvent(forced=forced))

    # ---------------------------------------------------------------- Helpers

    def _open_tracked(self, turn: _TurnProgress, request: OverlayRequest) -> str | None:
        """Show an overlay whose close the turn waits for."""
        original = request.on_close
        opened: List[str] = []

        def _on_close() -> None:
            try:
                if original is not None:
                    original()
            finally:
                for overlay_id in opened:
                    turn.open_overlays.discard(overlay_id)

        request.on_close = _on_close
        overlay_id = self._overlays.show(request)
        if overlay_id is not None:
            opened.append(overlay_id)
            turn.open_overlays.add(overlay_id)
        return overlay_id

    def _apply_rewards(self, amounts: Dict[RewardKind, int], source: str) -> Dict[RewardKind, int]:
        applied = self._composer.apply(self._state, amounts, rolls_cap=self._roll_pool.capacity)
        if applied:
            logger.info("rewards_applied source=%s amounts=%s", source, applied)
            self._publish(RewardsAppliedEvent(amounts=applied, source=source, net_worth=self._state.net_worth))
        self._economy.on_net_worth_change(self._state.net_worth)
        return applied

    def _arm_landed_guard(self) -> None:
        timeout = self._context.config.landed_timeout_ms
        if timeout is None:
            return
        self._landed_guard = self._schedule(timeout, self._on_landed_timeout, "landed_guard")

    def _on_landed_timeout(self) -> None:
        self._landed_guard = None
        if self._phase != "landed":
            return
        logger.warning("landed_timeout forcing idle")
        turn = self._turn
        self._context.timers.cancel_group(PORTAL_TIMER_GROUP)
        self._finish_turn(forced=True)
        if turn is not None and turn.portal_overlay_id is not None:
            self._overlays.close(turn.portal_overlay_id, reason="landed_timeout")

    def _on_event(self, event: object) -> None:
        if isinstance(event, OverlayClosedEvent):
            self._check_return_to_idle()

    def _schedule(self, delay_ms: int, callback: Callable[[], None], label: str) -> TimerHandle:
        return self._context.timers.schedule(delay_ms, callback, group=TURN_TIMER_GROUP, label=label)

    def _publish(self, event: TurnEvent) -> None:
        self._context.events.publish(event)
