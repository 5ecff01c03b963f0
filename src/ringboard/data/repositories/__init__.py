"""Repository exports."""

from .board_repo import BoardRepository
from .tiers_repo import TiersRepository

__all__ = [
    "BoardRepository",
    "TiersRepository",
]
