"""Board topology definitions: rings, tiles and portals."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

from ringboard.core.types import PortalActionKind, RewardKind, TileKind


@dataclass(frozen=True, slots=True)
class TileDef:
    """A single tile. Ids are positions within the owning ring."""

    id: int
    kind: TileKind
    title: str
    category: str | None = None
    reward_kind: RewardKind | None = None
    min_reward: int = 0
    max_reward: int = 0


@dataclass(frozen=True, slots=True)
class PortalActionDef:
    action: PortalActionKind
    target_ring: int
    target_tile: int


@dataclass(frozen=True, slots=True)
class PortalDef:
    """Portal tile of a ring and what happens on passing or landing on it."""

    tile_id: int
    on_pass: PortalActionDef
    on_land: PortalActionDef


@dataclass(frozen=True, slots=True)
class RingDef:
    number: int
    name: str
    tile_count: int
    reward_multiplier: float
    risk_multiplier: float
    tiles: Tuple[TileDef, ...]
    portal: PortalDef


class BoardTopology:
    """Immutable lookup over every ring of the board."""

    __slots__ = ("_rings",)

    def __init__(self, rings: Mapping[int, RingDef]) -> None:
        self._rings: Dict[int, RingDef] = dict(sorted(rings.items()))

    @property
    def ring_numbers(self) -> Tuple[int, ...]:
        return tuple(self._rings.keys())

    def ring(self, ring: int) -> RingDef:
        try:
            return self._rings[ring]
        except KeyError as exc:
            raise KeyError(f"Unknown ring {ring}") from exc

    def tile(self, ring: int, tile_id: int) -> TileDef | None:
        """Return the tile, or None if the ring or id is unknown."""
        ring_def = self._rings.get(ring)
        if ring_def is None or not 0 <= tile_id < len(ring_def.tiles):
            return None
        return ring_def.tiles[tile_id]

    def portal(self, ring: int) -> PortalDef:
        return self.ring(ring).portal

    def reward_multiplier(self, ring: int) -> float:
        ring_def = self._rings.get(ring)
        return ring_def.reward_multiplier if ring_def is not None else 1.0
