"""
Persistence layer for Stay Caffeinated.

Storage backends are simple synchronous key/value stores of JSON text.
StorageManager sits on top, owns the fixed keys, and never lets a storage
failure or a corrupted blob escape: reads degrade to defaults, writes
report False.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from stay_caffeinated.errors import StateCorruption

logger = logging.getLogger(__name__)


ACHIEVEMENTS_KEY = "stayCaffeinated_achievements"
SETTINGS_KEY = "stayCaffeinated_settings"
STATISTICS_KEY = "stayCaffeinated_statistics"
HIGH_SCORES_KEY = "stayCaffeinated_highScores"

STORAGE_KEYS = (ACHIEVEMENTS_KEY, SETTINGS_KEY, STATISTICS_KEY, HIGH_SCORES_KEY)
STORAGE_VERSION = "1.0.0"
MAX_HIGH_SCORES = 10


class Storage(Protocol):
    """
    Key/value store contract.

    Implementations may raise on failure (OSError, ValueError, quota errors).
    StorageManager catches any Exception from a backend, logs it and
    degrades to None or False.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage, for tests and headless runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStorage:
    """One `<key>.json` file per key under a directory."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# Persisted schemas
class CamelModel(BaseModel):
    """Base for persisted models: camelCase on disk, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlayerStatistics(CamelModel):
    """Lifetime statistics across all sessions."""

    total_play_time: float = Field(default=0.0, ge=0)
    games_played: int = Field(default=0, ge=0)
    high_score: int = Field(default=0, ge=0)
    total_drinks_consumed: int = Field(default=0, ge=0)
    drink_breakdown: dict[str, int] = Field(default_factory=dict)
    time_in_optimal_zone: float = Field(default=0.0, ge=0)
    perfect_days: int = Field(default=0, ge=0)
    crash_count: int = Field(default=0, ge=0)
    explosion_count: int = Field(default=0, ge=0)


class HighScoreEntry(CamelModel):
    score: int = Field(..., ge=0)
    difficulty: str
    date: str
    duration: float = Field(default=0.0, ge=0)
    drinks_consumed: int = Field(default=0, ge=0)


HighScoreTable = dict[str, list[HighScoreEntry]]


class StorageManager:
    """
    JSON persistence over a Storage backend.

    Usage:
        manager = StorageManager(MemoryStorage())
        manager.record_drink("coffee")
        manager.get_statistics().total_drinks_consumed  # -> 1
    """

    def __init__(self, storage: Storage | None = None):
        self.storage = storage if storage is not None else MemoryStorage()

    # Raw JSON access
    def get_item(self, key: str) -> Any | None:
        """Decoded value for key, or None when missing, unreadable or corrupt."""
        try:
            raw = self.storage.get(key)
        except Exception as e:
            logger.warning(f"Failed to read {key}: {e}")
            return None

        if raw is None:
            return None

        try:
            return self._decode(key, raw)
        except StateCorruption as e:
            self._discard(e)
            return None

    def set_item(self, key: str, value: Any) -> bool:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to encode {key}: {e}")
            return False

        try:
            self.storage.set(key, encoded)
        except Exception as e:
            logger.warning(f"Failed to save {key}: {e}")
            return False
        return True

    def remove_item(self, key: str) -> None:
        try:
            self.storage.remove(key)
        except Exception as e:
            logger.warning(f"Failed to remove {key}: {e}")

    def _decode(self, key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StateCorruption(key, f"invalid JSON ({e})") from e

    def _discard(self, error: StateCorruption) -> None:
        logger.warning(f"{error}; discarding stored value")
        self.remove_item(error.key)

    # Validated access
    def load(self, key: str, type_: Any) -> Any | None:
        """
        Load and validate a value against a pydantic-compatible type.
        Values that fail validation are discarded like unparseable ones.
        """
        data = self.get_item(key)
        if data is None:
            return None
        try:
            return TypeAdapter(type_).validate_python(data)
        except ValidationError as e:
            self._discard(StateCorruption(key, f"{e.error_count()} validation error(s)"))
            return None

    def save(self, key: str, value: Any, type_: Any = None) -> bool:
        adapter = TypeAdapter(type_ if type_ is not None else type(value))
        return self.set_item(key, adapter.dump_python(value, mode="json", by_alias=True))

    # Statistics
    def get_statistics(self) -> PlayerStatistics:
        return self.load(STATISTICS_KEY, PlayerStatistics) or PlayerStatistics()

    def save_statistics(self, stats: PlayerStatistics) -> bool:
        return self.save(STATISTICS_KEY, stats)

    def update_statistics(self, **updates: Any) -> bool:
        """Merge fields into the stored statistics."""
        merged = self.get_statistics().model_dump()
        merged.update(updates)
        try:
            stats = PlayerStatistics.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"Rejected statistics update: {e.error_count()} validation error(s)")
            return False
        return self.save_statistics(stats)

    def record_drink(self, drink_id: str) -> PlayerStatistics:
        """Count one drink in the lifetime totals. Returns the new statistics."""
        stats = self.get_statistics()
        breakdown = dict(stats.drink_breakdown)
        breakdown[drink_id] = breakdown.get(drink_id, 0) + 1
        stats = stats.model_copy(update={
            "total_drinks_consumed": stats.total_drinks_consumed + 1,
            "drink_breakdown": breakdown,
        })
        self.save_statistics(stats)
        return stats

    # High scores
    def get_high_scores(self) -> HighScoreTable:
        return self.load(HIGH_SCORES_KEY, HighScoreTable) or {}

    def add_high_score(self, entry: HighScoreEntry) -> bool:
        """Insert a score, keeping the top ten per difficulty."""
        table = self.get_high_scores()
        scores = table.get(entry.difficulty, []) + [entry]
        scores.sort(key=lambda s: s.score, reverse=True)
        table[entry.difficulty] = scores[:MAX_HIGH_SCORES]
        return self.save(HIGH_SCORES_KEY, table, HighScoreTable)

    def is_high_score(self, score: int, difficulty: str) -> bool:
        scores = self.get_high_scores().get(difficulty, [])
        return len(scores) < MAX_HIGH_SCORES or score > scores[-1].score

    # Whole-store operations
    def clear_all(self) -> None:
        for key in STORAGE_KEYS:
            self.remove_item(key)

    def export_data(self) -> dict[str, Any]:
        """Every stored value, for backups."""
        data = {}
        for key in STORAGE_KEYS:
            value = self.get_item(key)
            if value is not None:
                data[key] = value
        return {
            "version": STORAGE_VERSION,
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }
