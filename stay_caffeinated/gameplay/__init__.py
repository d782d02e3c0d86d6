"""
Simulation core for Stay Caffeinated.

Pure game logic: difficulty tiers, drinks and their effects, the game
state machine, workday events, power-ups, scoring and achievements.
Nothing here schedules frames or touches storage directly.
"""

from .difficulty import DifficultyManager, DifficultyConfig, DIFFICULTY_LEVELS
from .catalog import DRINK_DEFINITIONS, DrinkDefinition, ReleaseProfile, get_drink
from .effects import DrinkEffectCalculator
from .drinks import DrinkConsumptionManager, ConsumptionResult, recommend_drink
from .state import GameStateManager, GameStateData, GamePhase, EndReason
from .achievements import AchievementTracker, Achievement
from .events import WorkdayEventScheduler, WorkdayEventDefinition, WORKDAY_EVENTS
from .powerups import PowerUpManager, PowerUpDefinition, POWERUPS

__all__ = [
    "DifficultyManager",
    "DifficultyConfig",
    "DIFFICULTY_LEVELS",
    "DRINK_DEFINITIONS",
    "DrinkDefinition",
    "ReleaseProfile",
    "get_drink",
    "DrinkEffectCalculator",
    "DrinkConsumptionManager",
    "ConsumptionResult",
    "recommend_drink",
    "GameStateManager",
    "GameStateData",
    "GamePhase",
    "EndReason",
    "AchievementTracker",
    "Achievement",
    "WorkdayEventScheduler",
    "WorkdayEventDefinition",
    "WORKDAY_EVENTS",
    "PowerUpManager",
    "PowerUpDefinition",
    "POWERUPS",
]
