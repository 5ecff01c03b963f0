"""Domain definition exports."""

from .board_def import BoardTopology, PortalActionDef, PortalDef, RingDef, TileDef
from .tier_def import TierDef

__all__ = [
    "BoardTopology",
    "PortalActionDef",
    "PortalDef",
    "RingDef",
    "TierDef",
    "TileDef",
]
