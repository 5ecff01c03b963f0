"""Service layer exports."""

from .errors import PersistenceError, SaveLoadError
from .economy_service import EconomyRegulator
from .energy_service import RollPoolService
from .landing_service import LandingService
from .overlay_service import OverlayRequest, OverlayScheduler
from .reward_service import RewardComposer, RewardContext
from .save_service import SaveService
from .session_service import GameSession, PersistenceBackend
from .turn_service import RollOutcome, TurnStateMachine

__all__ = [
    "PersistenceError",
    "SaveLoadError",
    "EconomyRegulator",
    "RollPoolService",
    "LandingService",
    "OverlayRequest",
    "OverlayScheduler",
    "RewardComposer",
    "RewardContext",
    "SaveService",
    "GameSession",
    "PersistenceBackend",
    "RollOutcome",
    "TurnStateMachine",
]
