"""Net worth tier definitions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True, slots=True)
class TierDef:
    tier: int
    name: str
    min_net_worth: int
    description: str = ""
    benefits: Dict[str, float] = field(default_factory=dict)
