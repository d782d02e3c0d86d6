"""
Persistence for Stay Caffeinated: storage backends, statistics, high scores, settings.
"""

from stay_caffeinated.persistence.storage import (
    Storage,
    MemoryStorage,
    JsonFileStorage,
    StorageManager,
    PlayerStatistics,
    HighScoreEntry,
)
from stay_caffeinated.persistence.settings import GameSettings, SettingsStore

__all__ = [
    "Storage",
    "MemoryStorage",
    "JsonFileStorage",
    "StorageManager",
    "PlayerStatistics",
    "HighScoreEntry",
    "GameSettings",
    "SettingsStore",
]
