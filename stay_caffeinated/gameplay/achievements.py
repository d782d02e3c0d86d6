"""
Achievements - definitions, unlock tracking and import/export.
NO UI DEPENDENCIES.

Unlocks are one-shot: once an achievement is unlocked nothing short of
reset_all_achievements() or an import locks it again, and its callback
never fires twice.
"""
import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import Field, ValidationError

from ..persistence.storage import ACHIEVEMENTS_KEY, CamelModel, StorageManager
from .constants import (
    CAFFEINE_ADDICT_DRINKS, HIGH_ACHIEVER_SCORE, PERFECT_BALANCE_DURATION,
    SURVIVOR_DURATION,
)

logger = logging.getLogger(__name__)


class AchievementRarity(Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def points(self) -> int:
        return RARITY_POINTS[self]


RARITY_POINTS = {
    AchievementRarity.COMMON: 10,
    AchievementRarity.UNCOMMON: 25,
    AchievementRarity.RARE: 50,
    AchievementRarity.EPIC: 75,
    AchievementRarity.LEGENDARY: 100,
}


@dataclass
class Achievement:
    id: str
    name: str
    description: str
    icon: str
    rarity: AchievementRarity
    threshold: float
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None
    progress: Optional[int] = None
    max_progress: Optional[int] = None

    @property
    def points(self) -> int:
        return self.rarity.points

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "rarity": self.rarity.value,
            "points": self.points,
            "unlocked": self.unlocked,
            "unlockedAt": self.unlocked_at.isoformat() if self.unlocked_at else None,
            "progress": self.progress,
            "maxProgress": self.max_progress,
        }


def _definitions() -> Dict[str, Achievement]:
    """Fresh, locked copies of the five achievements."""
    return {
        "firstSip": Achievement(
            id="firstSip",
            name="First Sip",
            description="Consume your first drink",
            icon="☕",
            rarity=AchievementRarity.COMMON,
            threshold=1,
        ),
        "caffeineAddict": Achievement(
            id="caffeineAddict",
            name="Caffeine Addict",
            description=f"Consume {CAFFEINE_ADDICT_DRINKS} drinks in total",
            icon="\U0001F525",
            rarity=AchievementRarity.UNCOMMON,
            threshold=CAFFEINE_ADDICT_DRINKS,
            progress=0,
            max_progress=CAFFEINE_ADDICT_DRINKS,
        ),
        "survivor": Achievement(
            id="survivor",
            name="Survivor",
            description="Survive for 10 minutes without crashing",
            icon="\U0001F6E1",
            rarity=AchievementRarity.RARE,
            threshold=SURVIVOR_DURATION,
        ),
        "highAchiever": Achievement(
            id="highAchiever",
            name="High Achiever",
            description="Score 10,000 points in a single game",
            icon="\U0001F3C6",
            rarity=AchievementRarity.EPIC,
            threshold=HIGH_ACHIEVER_SCORE,
        ),
        "perfectBalance": Achievement(
            id="perfectBalance",
            name="Perfect Balance",
            description="Stay in the optimal caffeine zone for 5 minutes straight",
            icon="⚖",
            rarity=AchievementRarity.LEGENDARY,
            threshold=PERFECT_BALANCE_DURATION,
        ),
    }


ACHIEVEMENT_IDS = tuple(_definitions())


# Persisted / exported shapes
class AchievementRecord(CamelModel):
    """Mutable part of an achievement. Display fields in the input are ignored."""

    id: str
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None
    progress: Optional[int] = Field(default=None, ge=0)


class AchievementExport(CamelModel):
    achievements: List[AchievementRecord]
    total_points: int = 0
    completion_percentage: float = 0.0
    export_date: Optional[str] = None


UnlockCallback = Callable[[Achievement], None]
ProgressCallback = Callable[[str, int], None]


class AchievementTracker:
    """
    Evaluates achievement conditions from game events.

    Times passed to track_survival() and track_optimal_zone() are
    simulation milliseconds; survival is measured from the session start
    given to reset_session_stats().
    """

    def __init__(
        self,
        storage: Optional[StorageManager] = None,
        on_unlocked: Optional[UnlockCallback] = None,
        on_progress: Optional[ProgressCallback] = None
    ):
        self.storage = storage
        self.on_unlocked = on_unlocked
        self.on_progress = on_progress
        self._achievements = _definitions()
        self._load()
        self.reset_session_stats()

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _load(self) -> None:
        if self.storage is None:
            return
        records = self.storage.load(ACHIEVEMENTS_KEY, List[AchievementRecord]) or []
        self._apply_records(records)

    def _save(self) -> None:
        if self.storage is None:
            return
        self.storage.save(ACHIEVEMENTS_KEY, self._records(), List[AchievementRecord])

    def _records(self) -> List[AchievementRecord]:
        return [
            AchievementRecord(
                id=a.id,
                unlocked=a.unlocked,
                unlocked_at=a.unlocked_at,
                progress=a.progress,
            )
            for a in self._achievements.values()
        ]

    def _apply_records(self, records: List[AchievementRecord]) -> None:
        for record in records:
            achievement = self._achievements.get(record.id)
            if achievement is None:
                continue
            achievement.unlocked = record.unlocked
            achievement.unlocked_at = record.unlocked_at if record.unlocked else None
            if achievement.max_progress is not None:
                achievement.progress = min(record.progress or 0, achievement.max_progress)

    # =========================================================================
    # UNLOCKING
    # =========================================================================

    def _unlock(self, achievement_id: str) -> bool:
        achievement = self._achievements[achievement_id]
        if achievement.unlocked:
            return False

        achievement.unlocked = True
        achievement.unlocked_at = datetime.now(timezone.utc)
        logger.info(f"Achievement unlocked: {achievement.name} (+{achievement.points})")
        self._save()
        if self.on_unlocked:
            self.on_unlocked(replace(achievement))
        return True

    def _check(self, achievement_id: str, value: float) -> bool:
        achievement = self._achievements[achievement_id]
        if achievement.unlocked or value < achievement.threshold:
            return False
        return self._unlock(achievement_id)

    def _update_progress(self, achievement_id: str, progress: int) -> None:
        achievement = self._achievements[achievement_id]
        if achievement.unlocked or achievement.max_progress is None:
            return

        achievement.progress = min(progress, achievement.max_progress)
        if self.on_progress:
            self.on_progress(achievement_id, achievement.progress)

        if achievement.progress >= achievement.max_progress:
            self._unlock(achievement_id)
        else:
            self._save()

    # =========================================================================
    # TRACKING
    # =========================================================================

    def track_drink_consumed(self, drink_id: Optional[str] = None) -> None:
        self._session_drinks += 1
        if self.storage is not None:
            self.storage.record_drink(drink_id or "unknown")

        self._check("firstSip", self._session_drinks)
        self._update_progress("caffeineAddict", self._lifetime_baseline + self._session_drinks)

    def track_score(self, score: float) -> None:
        self._session_score = score
        self._check("highAchiever", score)

    def track_survival(self, now: float) -> None:
        self._survival_time = now - self._session_start
        self._check("survivor", self._survival_time)

    def track_optimal_zone(self, in_zone: bool, now: float) -> None:
        """Leaving the zone restarts the streak; re-entry needs a fresh 5 minutes."""
        if not in_zone:
            self._streak_start = None
            return

        if self._streak_start is None:
            self._streak_start = now
        self._check("perfectBalance", now - self._streak_start)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_achievements(self) -> List[Achievement]:
        return [replace(a) for a in self._achievements.values()]

    def get_unlocked_achievements(self) -> List[Achievement]:
        return [replace(a) for a in self._achievements.values() if a.unlocked]

    def get_achievement(self, achievement_id: str) -> Optional[Achievement]:
        achievement = self._achievements.get(achievement_id)
        return replace(achievement) if achievement else None

    def get_total_points(self) -> int:
        return sum(a.points for a in self._achievements.values() if a.unlocked)

    def get_completion_percentage(self) -> float:
        unlocked = sum(1 for a in self._achievements.values() if a.unlocked)
        return unlocked / len(self._achievements) * 100

    @property
    def session_drinks(self) -> int:
        return self._session_drinks

    @property
    def survival_time(self) -> float:
        return self._survival_time

    # =========================================================================
    # RESETS
    # =========================================================================

    def reset_session_stats(self, now: float = 0.0) -> None:
        """Start a new session. Unlocked achievements stay unlocked."""
        self._session_drinks = 0
        self._session_score = 0.0
        self._session_start = now
        self._survival_time = 0.0
        self._streak_start: Optional[float] = None
        self._lifetime_baseline = (
            self.storage.get_statistics().total_drinks_consumed if self.storage else 0
        )

    def reset_all_achievements(self) -> None:
        self._achievements = _definitions()
        self._save()
        self.reset_session_stats()

    # =========================================================================
    # IMPORT / EXPORT
    # =========================================================================

    def export_achievements(self) -> str:
        payload = {
            "achievements": [a.to_dict() for a in self._achievements.values()],
            "totalPoints": self.get_total_points(),
            "completionPercentage": self.get_completion_percentage(),
            "exportDate": datetime.now(timezone.utc).isoformat(),
        }
        return json.dumps(payload, indent=2)

    def import_achievements(self, data: str) -> bool:
        """
        Replace unlock state from an export.
        Returns False and changes nothing if the data is malformed.
        """
        try:
            parsed = AchievementExport.model_validate_json(data)
        except (ValidationError, TypeError) as e:
            logger.warning(f"Rejected achievement import: {e}")
            return False

        self._apply_records(parsed.achievements)
        self._save()
        return True
