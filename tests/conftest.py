"""
Pytest fixtures for Stay Caffeinated tests.
"""

import pytest

from stay_caffeinated.engine.loop import GameLoopConfig, GameLoopEngine
from stay_caffeinated.engine.scheduler import ManualScheduler
from stay_caffeinated.gameplay.achievements import AchievementTracker
from stay_caffeinated.gameplay.difficulty import DifficultyManager
from stay_caffeinated.gameplay.drinks import DrinkConsumptionManager
from stay_caffeinated.gameplay.effects import DrinkEffectCalculator
from stay_caffeinated.gameplay.state import GameStateManager
from stay_caffeinated.persistence.storage import MemoryStorage, StorageManager


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Hand-driven scheduler at 60 frames per second."""
    return ManualScheduler(frame_interval=1000 / 60)


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def storage_manager(memory_storage) -> StorageManager:
    return StorageManager(memory_storage)


class QuotaExceededStorage(MemoryStorage):
    """Reads work, every write fails the way a full browser store does."""

    def set(self, key: str, value: str) -> None:
        raise RuntimeError("quota exceeded")


@pytest.fixture
def full_storage_manager() -> StorageManager:
    return StorageManager(QuotaExceededStorage())


@pytest.fixture
def difficulty_manager() -> DifficultyManager:
    return DifficultyManager()


@pytest.fixture
def calculator() -> DrinkEffectCalculator:
    return DrinkEffectCalculator()


@pytest.fixture
def drink_manager() -> DrinkConsumptionManager:
    return DrinkConsumptionManager()


@pytest.fixture
def state_manager() -> GameStateManager:
    return GameStateManager()


@pytest.fixture
def tracker(storage_manager) -> AchievementTracker:
    return AchievementTracker(storage_manager)


@pytest.fixture
def engine(state_manager, scheduler, tracker):
    """Engine on junior with a manual scheduler and in-memory achievements."""
    engine = GameLoopEngine(
        state_manager,
        GameLoopConfig(),
        scheduler=scheduler,
        achievement_tracker=tracker,
    )
    yield engine
    engine.destroy()
