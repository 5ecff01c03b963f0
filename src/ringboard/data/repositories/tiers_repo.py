"""Repository for net worth tier definitions."""
from __future__ import annotations

from typing import Dict, List, Tuple

from ringboard.data.errors import DataValidationError
from ringboard.data.repositories.base import RepositoryBase
from ringboard.domain.defs import TierDef


class TiersRepository(RepositoryBase[Tuple[TierDef, ...]]):
    """Loads tiers.json; tiers come back ordered by threshold."""

    def __init__(self, base_path=None) -> None:
        super().__init__("tiers.json", base_path)

    def all(self) -> List[TierDef]:
        return list(self.load())

    def get(self, tier: int) -> TierDef:
        for definition in self.load():
            if definition.tier == tier:
                return definition
        raise KeyError(tier)

    def _build(self, raw: dict[str, object]) -> Tuple[TierDef, ...]:
        tiers_raw = self._require_list(raw.get("tiers"), "tiers.json tiers")
        tiers: List[TierDef] = []
        seen: set[int] = set()
        for index, payload in enumerate(tiers_raw):
            mapping = self._require_mapping(payload, f"tier #{index}")
            tier = self._require_int(mapping.get("tier"), f"tier #{index} tier")
            if tier in seen:
                raise DataValidationError(f"Duplicate tier {tier}.")
            seen.add(tier)
            name = self._require_str(mapping.get("name"), f"tier {tier} name")
            min_net_worth = self._require_int(mapping.get("min_net_worth"), f"tier {tier} min_net_worth")
            if min_net_worth < 0:
                raise DataValidationError(f"tier {tier} min_net_worth must be >= 0.")
            description = mapping.get("description", "")
            if not isinstance(description, str):
                raise DataValidationError(f"tier {tier} description must be a string.")
            benefits: Dict[str, float] = {}
            for b_index, benefit_raw in enumerate(
                self._require_list(mapping.get("benefits", []), f"tier {tier} benefits")
            ):
                benefit = self._require_mapping(benefit_raw, f"tier {tier} benefit #{b_index}")
                benefit_type = self._require_str(benefit.get("type"), f"tier {tier} benefit #{b_index} type")
                benefits[benefit_type] = self._require_number(
                    benefit.get("value"), f"tier {tier} benefit '{benefit_type}' value"
                )
            tiers.append(
                TierDef(
                    tier=tier,
                    name=name,
                    min_net_worth=min_net_worth,
                    description=description,
                    benefits=benefits,
                )
            )
        if not tiers:
            raise DataValidationError("tiers.json must define at least one tier.")
        ordered = sorted(tiers, key=lambda entry: entry.min_net_worth)
        if ordered[0].min_net_worth != 0:
            raise DataValidationError("The lowest tier must start at net worth 0.")
        return tuple(ordered)
