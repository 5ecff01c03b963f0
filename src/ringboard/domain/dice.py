"""Two-die rolls and the doubles bonus."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from ringboard.core.rng import RNG
from ringboard.core.types import RewardKind

DIE_FACES = 6
DOUBLES_BONUS: Dict[RewardKind, int] = {"stars": 25, "coins": 50, "xp": 15}


@dataclass(frozen=True, slots=True)
class DiceRoll:
    die1: int
    die2: int

    @property
    def total(self) -> int:
        return self.die1 + self.die2

    @property
    def is_doubles(self) -> bool:
        return self.die1 == self.die2


def roll_dice(rng: RNG) -> DiceRoll:
    return DiceRoll(die1=rng.randint(1, DIE_FACES), die2=rng.randint(1, DIE_FACES))


def doubles_bonus(roll: DiceRoll) -> Dict[RewardKind, int]:
    """Base amounts added on doubles, before any multiplier."""
    return dict(DOUBLES_BONUS) if roll.is_doubles else {}
