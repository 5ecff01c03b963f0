"""Dice movement across rings, including portal resolution.

resolve_movement is pure: it only reads the topology and returns the full
hop-by-hop path for one roll. Timers and state mutation belong to the turn
state machine that replays the path.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from ringboard.core.types import PortalActionKind, PortalDirection
from ringboard.domain.defs import BoardTopology

logger = logging.getLogger(__name__)

_DIRECTIONS: Dict[PortalActionKind, PortalDirection] = {
    "ascend": "up",
    "descend": "down",
    "throne": "throne",
}


@dataclass(frozen=True, slots=True)
class MovementStep:
    ring: int
    tile_id: int


@dataclass(slots=True)
class MovementResult:
    """Path from the start tile (exclusive) to the destination (inclusive)."""

    path: List[MovementStep] = field(default_factory=list)
    final_ring: int = 1
    final_tile_id: int = 0
    portal_triggered: bool = False
    portal_direction: PortalDirection | None = None
    landed_exactly_on_portal: bool = False
    portal_action: PortalActionKind | None = None
    portal_target: MovementStep | None = None


def resolve_movement(
    topology: BoardTopology, current_ring: int, current_tile: int, steps: int
) -> MovementResult:
    """Walk `steps` tiles from the current position and fire at most one portal."""
    stationary = MovementResult(final_ring=current_ring, final_tile_id=current_tile)
    if steps <= 0:
        return stationary
    if topology.tile(current_ring, current_tile) is None:
        logger.error("movement_start_unknown ring=%s tile=%s", current_ring, current_tile)
        return stationary

    result = MovementResult(final_ring=current_ring, final_tile_id=current_tile)
    ring = current_ring
    tile = current_tile
    remaining = steps
    portal_fired = False
    while remaining > 0:
        ring_def = topology.ring(ring)
        tile = (tile + 1) % ring_def.tile_count
        remaining -= 1
        result.path.append(MovementStep(ring, tile))
        if portal_fired or tile != ring_def.portal.tile_id:
            continue

        portal_fired = True
        landing = remaining == 0
        action = ring_def.portal.on_land if landing else ring_def.portal.on_pass
        result.portal_action = action.action
        result.landed_exactly_on_portal = landing
        if action.action == "stay":
            continue

        target = MovementStep(action.target_ring, action.target_tile)
        result.portal_triggered = True
        result.portal_direction = _DIRECTIONS[action.action]
        result.portal_target = target
        if landing:
            # The turn machine moves the token to the target after the landing settles.
            break
        # The jump itself costs no step.
        result.path.append(target)
        ring, tile = target.ring, target.tile_id
        if action.action == "throne":
            break

    result.final_ring = ring
    result.final_tile_id = tile
    logger.debug(
        "movement_resolved from=%s:%s steps=%s to=%s:%s portal=%s",
        current_ring,
        current_tile,
        steps,
        ring,
        tile,
        result.portal_action,
    )
    return result


def hop_tiles(result: MovementResult) -> List[int]:
    """Tile ids along the path, in hop order."""
    return [step.tile_id for step in result.path]
