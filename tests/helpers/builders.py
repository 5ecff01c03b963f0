"""Small hand-built boards and service graphs for engine tests."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from ringboard.core.config import EngineConfig
from ringboard.core.context import GameContext
from ringboard.core.rng import RNG
from ringboard.domain.defs import BoardTopology, PortalActionDef, PortalDef, RingDef, TileDef
from ringboard.domain.state import GameState
from ringboard.services.economy_service import EconomyRegulator
from ringboard.services.energy_service import RollPoolService
from ringboard.services.landing_service import LandingService
from ringboard.services.overlay_service import OverlayScheduler
from ringboard.services.reward_service import RewardComposer
from ringboard.services.turn_service import TurnStateMachine

# Short delays keep the arithmetic in timing tests readable.
FAST_CONFIG = EngineConfig(
    roll_delay_ms=100,
    hop_interval_ms=10,
    teleport_pause_ms=50,
    settle_delay_ms=20,
    portal_transition_ms=300,
)


class ScriptedRNG(RNG):
    """RNG whose randint calls are served from a fixed script first."""

    def __init__(self, seed: int = 0, script: Iterable[int] = ()) -> None:
        super().__init__(seed)
        self._script: List[int] = list(script)

    def queue(self, *values: int) -> None:
        self._script.extend(values)

    def randint(self, a: int, b: int) -> int:
        if self._script:
            return self._script.pop(0)
        return super().randint(a, b)


def build_action(action: str = "stay", target_ring: int = 1, target_tile: int = 0) -> PortalActionDef:
    return PortalActionDef(action=action, target_ring=target_ring, target_tile=target_tile)


def build_ring(
    number: int,
    tile_count: int,
    *,
    on_pass: PortalActionDef | None = None,
    on_land: PortalActionDef | None = None,
    portal_tile: int = 0,
    reward_multiplier: float = 1.0,
    kinds: Dict[int, str] | None = None,
) -> RingDef:
    """Ring of corner tiles with a start tile at 0. `kinds` overrides single tiles."""
    kinds = kinds or {}
    tiles: List[TileDef] = []
    for index in range(tile_count):
        kind = kinds.get(index, "start" if index == 0 else "corner")
        if kind == "category":
            tiles.append(TileDef(id=index, kind="category", title=f"Tile {index}", category="tech"))
        elif kind == "quick_reward":
            tiles.append(
                TileDef(
                    id=index,
                    kind="quick_reward",
                    title=f"Tile {index}",
                    reward_kind="cash",
                    min_reward=500,
                    max_reward=500,
                )
            )
        else:
            tiles.append(TileDef(id=index, kind=kind, title=f"Tile {index}"))
    stay = build_action("stay", number, portal_tile)
    return RingDef(
        number=number,
        name=f"Ring {number}",
        tile_count=tile_count,
        reward_multiplier=reward_multiplier,
        risk_multiplier=1.0,
        tiles=tuple(tiles),
        portal=PortalDef(tile_id=portal_tile, on_pass=on_pass or stay, on_land=on_land or stay),
    )


def build_topology(*rings: RingDef) -> BoardTopology:
    return BoardTopology({ring.number: ring for ring in rings})


def build_stay_board(tile_count: int = 10, **kwargs) -> BoardTopology:
    """Single ring whose portal never moves the token."""
    return build_topology(build_ring(1, tile_count, **kwargs))


def build_two_ring_board(
    outer_tiles: int = 28,
    inner_tiles: int = 10,
    *,
    pass_action: str = "ascend",
    land_action: str = "ascend",
    outer_kinds: Dict[int, str] | None = None,
) -> BoardTopology:
    """Ring 1 with a portal at tile 0 into ring 2 tile 0; ring 2 portal stays put."""
    outer = build_ring(
        1,
        outer_tiles,
        on_pass=build_action(pass_action, 2, 0),
        on_land=build_action(land_action, 2, 0),
        kinds=outer_kinds,
    )
    inner = build_ring(2, inner_tiles, reward_multiplier=3.0)
    return build_topology(outer, inner)


@dataclass(slots=True)
class Engine:
    context: GameContext
    state: GameState
    rng: ScriptedRNG
    economy: EconomyRegulator
    overlays: OverlayScheduler
    composer: RewardComposer
    roll_pool: RollPoolService
    landing: LandingService
    turn: TurnStateMachine

    def events_of(self, event_type: type) -> List[object]:
        return self.context.events.history_of(event_type)


def build_engine(
    topology: BoardTopology,
    *,
    config: EngineConfig = FAST_CONFIG,
    position: Tuple[int, int] = (1, 0),
    rolls: int = 10,
    dice: Sequence[int] = (),
    tiers: Sequence = (),
    seed: int = 7,
) -> Engine:
    context = GameContext.manual(config=config, seed=seed)
    rng = ScriptedRNG(seed, dice)
    ring, tile = position
    state = GameState(seed=seed, rng=rng, position=tile, current_ring=ring, rolls=rolls)
    context.rng = rng
    economy = EconomyRegulator(context, state.economy)
    overlays = OverlayScheduler(context)
    composer = RewardComposer(economy=economy, topology=topology)
    roll_pool = RollPoolService(context, state)
    landing = LandingService()
    turn = TurnStateMachine(
        context=context,
        state=state,
        topology=topology,
        composer=composer,
        economy=economy,
        overlays=overlays,
        roll_pool=roll_pool,
        landing=landing,
        tiers=tiers,
    )
    return Engine(context, state, rng, economy, overlays, composer, roll_pool, landing, turn)
