"""
Difficulty system - tier configurations and derived gameplay parameters.
NO UI DEPENDENCIES.
"""
import math
from dataclasses import dataclass, fields, replace
from typing import Dict, List, Optional

from ..errors import InvalidDifficulty
from .constants import (
    BASELINE_WORKDAY_MINUTES, HEALTH_BASE_DEPLETION, OPTIMAL_ZONE_CENTER,
    CAFFEINE_MIN, CAFFEINE_MAX, TOLERANCE_PER_DRINK, WORKDAY_REAL_MINUTES,
)


# Tier ids, easiest first
DIFFICULTY_ORDER = ("intern", "junior", "senior", "founder")
DEFAULT_DIFFICULTY = "junior"


@dataclass(frozen=True)
class DifficultyConfig:
    """Immutable parameters for one difficulty tier."""
    id: str
    name: str
    workday_length: int                 # game minutes
    optimal_zone_size: float            # width of the optimal band, in percent
    caffeine_depletion_rate: float      # base caffeine loss per second
    caffeine_depletion_multiplier: float
    health_depletion_multiplier: float
    drink_effectiveness_multiplier: float
    score_multiplier: float
    reaction_time_window: float         # ms
    max_simultaneous_tasks: int
    crash_severity_multiplier: float
    tolerance_buildup: float
    description: str


DIFFICULTY_LEVELS: Dict[str, DifficultyConfig] = {
    "intern": DifficultyConfig(
        id="intern",
        name="Intern",
        workday_length=360,
        optimal_zone_size=50,
        caffeine_depletion_rate=0.5,
        caffeine_depletion_multiplier=0.75,
        health_depletion_multiplier=0.5,
        drink_effectiveness_multiplier=1.25,
        score_multiplier=1.0,
        reaction_time_window=3000,
        max_simultaneous_tasks=1,
        crash_severity_multiplier=0.5,
        tolerance_buildup=0.25,
        description="Easy mode - shorter day, larger optimal zone, forgiving mechanics",
    ),
    "junior": DifficultyConfig(
        id="junior",
        name="Junior Developer",
        workday_length=480,
        optimal_zone_size=40,
        caffeine_depletion_rate=0.75,
        caffeine_depletion_multiplier=1.0,
        health_depletion_multiplier=1.0,
        drink_effectiveness_multiplier=1.0,
        score_multiplier=1.5,
        reaction_time_window=2000,
        max_simultaneous_tasks=2,
        crash_severity_multiplier=1.0,
        tolerance_buildup=0.5,
        description="Normal mode - standard workday, balanced challenge",
    ),
    "senior": DifficultyConfig(
        id="senior",
        name="Senior Developer",
        workday_length=600,
        optimal_zone_size=30,
        caffeine_depletion_rate=1.0,
        caffeine_depletion_multiplier=1.25,
        health_depletion_multiplier=1.5,
        drink_effectiveness_multiplier=0.85,
        score_multiplier=2.0,
        reaction_time_window=1500,
        max_simultaneous_tasks=3,
        crash_severity_multiplier=1.5,
        tolerance_buildup=0.75,
        description="Hard mode - longer day, smaller optimal zone, demanding pace",
    ),
    "founder": DifficultyConfig(
        id="founder",
        name="Startup Founder",
        workday_length=840,
        optimal_zone_size=20,
        caffeine_depletion_rate=1.5,
        caffeine_depletion_multiplier=1.5,
        health_depletion_multiplier=2.0,
        drink_effectiveness_multiplier=0.7,
        score_multiplier=3.0,
        reaction_time_window=1000,
        max_simultaneous_tasks=4,
        crash_severity_multiplier=2.0,
        tolerance_buildup=1.0,
        description="Extreme mode - marathon day, tiny optimal zone, unforgiving mechanics",
    ),
}


@dataclass(frozen=True)
class ChallengeModifiers:
    """Challenge knobs derived from the tier (or overridden for challenge modes)."""
    caffeine_volatility: float
    focus_requirement: float
    multitasking_penalty: float
    time_pressure: float


@dataclass(frozen=True)
class CaffeineRange:
    min: float
    max: float

    def contains(self, level: float) -> bool:
        return self.min <= level <= self.max


CHALLENGE_MODIFIER_NAMES = tuple(f.name for f in fields(ChallengeModifiers))


def is_valid_difficulty(difficulty: object) -> bool:
    """Check whether a value names one of the four tiers."""
    return isinstance(difficulty, str) and difficulty in DIFFICULTY_LEVELS


def get_difficulty_config(difficulty: str) -> DifficultyConfig:
    """Strict tier lookup. Raises InvalidDifficulty for unknown ids."""
    if not is_valid_difficulty(difficulty):
        raise InvalidDifficulty(difficulty)
    return DIFFICULTY_LEVELS[difficulty]


def get_optimal_range(difficulty: str) -> CaffeineRange:
    """Optimal caffeine band for a tier, centered on 50."""
    half = get_difficulty_config(difficulty).optimal_zone_size / 2
    return CaffeineRange(
        min=max(CAFFEINE_MIN, OPTIMAL_ZONE_CENTER - half),
        max=min(CAFFEINE_MAX, OPTIMAL_ZONE_CENTER + half),
    )


def get_difficulty_names() -> List[Dict[str, str]]:
    """(value, label) pairs for difficulty pickers, easiest first."""
    return [
        {"value": tier, "label": DIFFICULTY_LEVELS[tier].name}
        for tier in DIFFICULTY_ORDER
    ]


class DifficultyManager:
    """
    Holds the current difficulty selection and derives gameplay parameters.

    Custom challenge modifiers survive tier changes; only reset() or
    clear_custom_modifiers() removes them.
    """

    def __init__(self, difficulty: str = DEFAULT_DIFFICULTY):
        self._difficulty = difficulty
        self._config = get_difficulty_config(difficulty)
        self._custom_modifiers: Dict[str, float] = {}

    @property
    def difficulty(self) -> str:
        return self._difficulty

    @property
    def config(self) -> DifficultyConfig:
        return self._config

    def set_difficulty(self, difficulty: str) -> None:
        """Switch tier. Raises InvalidDifficulty for unknown ids."""
        self._config = get_difficulty_config(difficulty)
        self._difficulty = difficulty

    # =========================================================================
    # DERIVED PARAMETERS
    # =========================================================================

    def get_optimal_caffeine_range(self) -> CaffeineRange:
        return get_optimal_range(self._difficulty)

    def get_caffeine_depletion_rate(self, dt: float = 1.0) -> float:
        """Caffeine lost over dt seconds."""
        return (
            self._config.caffeine_depletion_rate
            * self._config.caffeine_depletion_multiplier
            * dt
        )

    def get_health_depletion_rate(self, dt: float = 1.0) -> float:
        """Health lost over dt seconds outside the optimal zone."""
        return HEALTH_BASE_DEPLETION * self._config.health_depletion_multiplier * dt

    def adjust_drink_effectiveness(self, boost: float) -> float:
        return boost * self._config.drink_effectiveness_multiplier

    def calculate_score(self, raw_score: float) -> int:
        return math.floor(raw_score * self._config.score_multiplier)

    def get_crash_severity(self) -> float:
        return self._config.crash_severity_multiplier

    def get_tolerance_buildup(self) -> float:
        return self._config.tolerance_buildup

    def get_tolerance_rate(self) -> float:
        """
        Effectiveness lost per recent drink.
        5% at junior, scaled linearly by the tier's tolerance buildup.
        """
        baseline = DIFFICULTY_LEVELS[DEFAULT_DIFFICULTY].tolerance_buildup
        return TOLERANCE_PER_DRINK * self._config.tolerance_buildup / baseline

    def is_within_reaction_window(self, reaction_ms: float) -> bool:
        return reaction_ms <= self._config.reaction_time_window

    def get_workday_duration(self, real_minutes: float = WORKDAY_REAL_MINUTES) -> float:
        """
        Real-time length of this tier's workday in ms.
        A junior day (480 game minutes) lasts exactly `real_minutes`.
        """
        game_to_real = (real_minutes * 60 * 1000) / BASELINE_WORKDAY_MINUTES
        return self._config.workday_length * game_to_real

    # =========================================================================
    # CHALLENGE MODIFIERS
    # =========================================================================

    def get_challenge_modifiers(self) -> ChallengeModifiers:
        """Tier-derived modifiers; custom values replace derived ones outright."""
        derived = ChallengeModifiers(
            caffeine_volatility=self._config.caffeine_depletion_multiplier,
            focus_requirement=1 / (self._config.optimal_zone_size / 100),
            multitasking_penalty=self._config.max_simultaneous_tasks * 0.1,
            time_pressure=1000 / self._config.reaction_time_window,
        )
        return replace(derived, **self._custom_modifiers)

    def set_custom_modifiers(self, **modifiers: float) -> None:
        """
        Override challenge modifiers for challenge modes.
        Replaces any previous overlay.
        """
        unknown = set(modifiers) - set(CHALLENGE_MODIFIER_NAMES)
        if unknown:
            raise ValueError(f"Unknown challenge modifiers: {sorted(unknown)}")
        self._custom_modifiers = dict(modifiers)

    def clear_custom_modifiers(self) -> None:
        self._custom_modifiers = {}

    # =========================================================================
    # PROGRESSION
    # =========================================================================

    def get_next_difficulty(self) -> Optional[str]:
        index = DIFFICULTY_ORDER.index(self._difficulty)
        if index < len(DIFFICULTY_ORDER) - 1:
            return DIFFICULTY_ORDER[index + 1]
        return None

    def get_previous_difficulty(self) -> Optional[str]:
        index = DIFFICULTY_ORDER.index(self._difficulty)
        if index > 0:
            return DIFFICULTY_ORDER[index - 1]
        return None

    def is_max_difficulty(self) -> bool:
        return self._difficulty == DIFFICULTY_ORDER[-1]

    def is_min_difficulty(self) -> bool:
        return self._difficulty == DIFFICULTY_ORDER[0]

    def get_difficulty_info(self) -> dict:
        """Summary of the current tier as plain data for UI."""
        optimal = self.get_optimal_caffeine_range()
        return {
            "name": self._config.name,
            "description": self._config.description,
            "stats": [
                {"label": "Workday Length", "value": f"{self._config.workday_length // 60} hours"},
                {"label": "Optimal Zone", "value": f"{optimal.min:g}-{optimal.max:g}%"},
                {"label": "Caffeine Depletion", "value": f"{self._config.caffeine_depletion_rate * 100:.0f}%"},
                {"label": "Score Multiplier", "value": f"{self._config.score_multiplier:g}x"},
                {"label": "Max Tasks", "value": str(self._config.max_simultaneous_tasks)},
            ],
        }

    def reset(self) -> None:
        """Back to the default tier with no custom modifiers."""
        self.set_difficulty(DEFAULT_DIFFICULTY)
        self._custom_modifiers = {}
