"""Repository for the ring/tile/portal board layout."""
from __future__ import annotations

from typing import Dict, List

from ringboard.core.types import PORTAL_ACTIONS, REWARD_KINDS, TILE_KINDS
from ringboard.data.errors import DataReferenceError, DataValidationError
from ringboard.data.repositories.base import RepositoryBase
from ringboard.domain.defs import BoardTopology, PortalActionDef, PortalDef, RingDef, TileDef


class BoardRepository(RepositoryBase[BoardTopology]):
    """Loads board.json and validates it into a BoardTopology."""

    def __init__(self, base_path=None) -> None:
        super().__init__("board.json", base_path)

    def get_topology(self) -> BoardTopology:
        return self.load()

    def _build(self, raw: dict[str, object]) -> BoardTopology:
        rings_raw = self._require_list(raw.get("rings"), "board.json rings")
        if not rings_raw:
            raise DataValidationError("board.json must define at least one ring.")
        pending: Dict[int, dict[str, object]] = {}
        for index, payload in enumerate(rings_raw):
            mapping = self._require_mapping(payload, f"ring #{index}")
            number = self._require_int(mapping.get("number"), f"ring #{index} number")
            if number in pending:
                raise DataValidationError(f"Duplicate ring number {number}.")
            pending[number] = mapping

        # Portals may target any ring, so tile counts are checked before any portal.
        tile_counts: Dict[int, int] = {}
        for number, mapping in pending.items():
            tile_count = self._require_int(mapping.get("tile_count"), f"ring {number} tile_count")
            if tile_count <= 0:
                raise DataValidationError(f"ring {number} tile_count must be > 0.")
            tile_counts[number] = tile_count

        rings: Dict[int, RingDef] = {}
        for number, mapping in pending.items():
            context = f"ring {number}"
            name = self._require_str(mapping.get("name"), f"{context} name").strip()
            reward_multiplier = self._require_number(
                mapping.get("reward_multiplier", 1), f"{context} reward_multiplier"
            )
            risk_multiplier = self._require_number(
                mapping.get("risk_multiplier", 1), f"{context} risk_multiplier"
            )
            if reward_multiplier <= 0:
                raise DataValidationError(f"{context} reward_multiplier must be > 0.")
            tiles = self._build_tiles(mapping.get("tiles"), context, tile_counts[number])
            portal = self._build_portal(mapping.get("portal"), number, tile_counts)
            rings[number] = RingDef(
                number=number,
                name=name,
                tile_count=tile_counts[number],
                reward_multiplier=reward_multiplier,
                risk_multiplier=risk_multiplier,
                tiles=tuple(tiles),
                portal=portal,
            )
        return BoardTopology(rings)

    def _build_tiles(self, value: object, context: str, tile_count: int) -> List[TileDef]:
        tiles_raw = self._require_list(value, f"{context} tiles")
        if len(tiles_raw) != tile_count:
            raise DataValidationError(
                f"{context} declares {tile_count} tiles but lists {len(tiles_raw)}."
            )
        tiles: List[TileDef] = []
        for index, payload in enumerate(tiles_raw):
            mapping = self._require_mapping(payload, f"{context} tile #{index}")
            tile_context = f"{context} tile {index}"
            tile_id = self._require_int(mapping.get("id"), f"{tile_context} id")
            if tile_id != index:
                raise DataValidationError(f"{tile_context} id must equal its position ({tile_id} found).")
            kind = mapping.get("kind")
            if kind not in TILE_KINDS:
                raise DataValidationError(f"{tile_context} has unknown kind {kind!r}.")
            title = self._require_str(mapping.get("title"), f"{tile_context} title")
            category = mapping.get("category")
            if category is not None:
                category = self._require_str(category, f"{tile_context} category")
            if kind == "category" and category is None:
                raise DataValidationError(f"{tile_context} is a category tile without a category.")
            reward_kind = mapping.get("reward_kind")
            min_reward = 0
            max_reward = 0
            if kind == "quick_reward":
                if reward_kind not in REWARD_KINDS:
                    raise DataValidationError(f"{tile_context} has unknown reward_kind {reward_kind!r}.")
                min_reward = self._require_int(mapping.get("min_reward"), f"{tile_context} min_reward")
                max_reward = self._require_int(mapping.get("max_reward"), f"{tile_context} max_reward")
                if min_reward < 0 or min_reward > max_reward:
                    raise DataValidationError(f"{tile_context} reward range is invalid.")
            elif reward_kind is not None:
                raise DataValidationError(f"{tile_context} sets reward_kind on a {kind} tile.")
            tiles.append(
                TileDef(
                    id=tile_id,
                    kind=kind,
                    title=title,
                    category=category,
                    reward_kind=reward_kind,
                    min_reward=min_reward,
                    max_reward=max_reward,
                )
            )
        return tiles

    def _build_portal(self, value: object, number: int, tile_counts: Dict[int, int]) -> PortalDef:
        context = f"ring {number} portal"
        mapping = self._require_mapping(value, context)
        tile_id = self._require_int(mapping.get("tile_id"), f"{context} tile_id")
        if not 0 <= tile_id < tile_counts[number]:
            raise DataReferenceError(f"{context} tile_id {tile_id} is outside the ring.")
        on_pass = self._build_portal_action(mapping.get("on_pass"), f"{context} on_pass", tile_counts)
        on_land = self._build_portal_action(mapping.get("on_land"), f"{context} on_land", tile_counts)
        return PortalDef(tile_id=tile_id, on_pass=on_pass, on_land=on_land)

    def _build_portal_action(
        self, value: object, context: str, tile_counts: Dict[int, int]
    ) -> PortalActionDef:
        mapping = self._require_mapping(value, context)
        action = mapping.get("action")
        if action not in PORTAL_ACTIONS:
            raise DataValidationError(f"{context} has unknown action {action!r}.")
        target_ring = self._require_int(mapping.get("target_ring"), f"{context} target_ring")
        target_tile = self._require_int(mapping.get("target_tile"), f"{context} target_tile")
        if target_ring not in tile_counts:
            raise DataReferenceError(f"{context} targets unknown ring {target_ring}.")
        if not 0 <= target_tile < tile_counts[target_ring]:
            raise DataReferenceError(
                f"{context} target tile {target_tile} is outside ring {target_ring}."
            )
        return PortalActionDef(action=action, target_ring=target_ring, target_tile=target_tile)
