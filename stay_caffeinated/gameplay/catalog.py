"""
Drink catalog and per-drink effect records.
NO UI DEPENDENCIES.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..errors import InvalidDrink
from .constants import (
    CRASH_DURATION_PER_SEVERITY, HYDRATION_DURATION, SLOW_PEAK_FRACTION,
)


class ReleaseProfile(Enum):
    """Time-shape of a drink's caffeine release."""
    INSTANT = "instant"     # front-loaded spike
    SLOW = "slow"           # ramps up to 80% of the window, then tapers
    MODERATE = "moderate"   # symmetric bell


@dataclass(frozen=True)
class DrinkDefinition:
    """
    Immutable drink parameters.

    icon, color and description are opaque display metadata; the
    simulation never reads them.
    """
    id: str
    name: str
    caffeine_boost: float
    release_profile: Optional[ReleaseProfile]  # None: no caffeine (water)
    release_duration: float                    # ms
    crash_severity: float                      # 0-8
    cooldown: float                            # ms
    icon: str = ""
    color: str = ""
    description: str = ""

    @property
    def crash_duration(self) -> float:
        """Length of the crash window that follows the release window."""
        return self.crash_severity * CRASH_DURATION_PER_SEVERITY

    @property
    def has_caffeine(self) -> bool:
        return self.release_profile is not None and self.caffeine_boost > 0


DRINK_DEFINITIONS: Dict[str, DrinkDefinition] = {
    "tea": DrinkDefinition(
        id="tea",
        name="Tea",
        caffeine_boost=15,
        release_profile=ReleaseProfile.SLOW,
        release_duration=3000,
        crash_severity=2,
        cooldown=2000,
        icon="\U0001F375",
        color="#10b981",
        description="Gentle caffeine boost with minimal crash",
    ),
    "coffee": DrinkDefinition(
        id="coffee",
        name="Coffee",
        caffeine_boost=30,
        release_profile=ReleaseProfile.MODERATE,
        release_duration=2000,
        crash_severity=5,
        cooldown=3000,
        icon="☕",
        color="#8b4513",
        description="Reliable caffeine boost with moderate crash",
    ),
    "energyDrink": DrinkDefinition(
        id="energyDrink",
        name="Energy Drink",
        caffeine_boost=50,
        release_profile=ReleaseProfile.INSTANT,
        release_duration=500,
        crash_severity=8,
        cooldown=5000,
        icon="⚡",
        color="#eab308",
        description="Massive instant boost but harsh crash",
    ),
    "espresso": DrinkDefinition(
        id="espresso",
        name="Espresso",
        caffeine_boost=40,
        release_profile=ReleaseProfile.INSTANT,
        release_duration=1000,
        crash_severity=6,
        cooldown=4000,
        icon="☕",
        color="#1e293b",
        description="Quick strong boost with notable crash",
    ),
    "water": DrinkDefinition(
        id="water",
        name="Water",
        caffeine_boost=0,
        release_profile=None,
        release_duration=0,
        crash_severity=0,
        cooldown=1000,
        icon="\U0001F4A7",
        color="#3b82f6",
        description="No caffeine but helps stabilize levels",
    ),
}

# Catalog order is the display order
DRINK_IDS = tuple(DRINK_DEFINITIONS)


def get_drink(drink_id: str) -> DrinkDefinition:
    """Strict lookup. Raises InvalidDrink for unknown ids."""
    drink = DRINK_DEFINITIONS.get(drink_id)
    if drink is None:
        raise InvalidDrink(drink_id)
    return drink


def get_all_drinks() -> List[DrinkDefinition]:
    return list(DRINK_DEFINITIONS.values())


@dataclass
class ActiveEffect:
    """
    A drink working its way through the system.

    Timeline: start_time -> release_end (release window) -> end_time
    (crash window). For water the release window is a hydration window
    that only provides stability.
    """
    drink_id: str
    start_time: float
    peak_time: float
    release_end: float
    end_time: float
    peak_boost: float        # full-strength boost after effectiveness scaling
    peak_caffeine: float     # highest caffeine seen during release; drives the crash
    current_boost: float = 0.0
    is_active: bool = True
    last_update: float = 0.0

    @classmethod
    def create(cls, drink: DrinkDefinition, now: float, boost: float) -> "ActiveEffect":
        """Build the effect for a drink consumed at `now`."""
        if drink.release_profile is None:
            release_end = now + HYDRATION_DURATION
            peak_time = now
        else:
            release_end = now + drink.release_duration
            if drink.release_profile == ReleaseProfile.INSTANT:
                peak_time = now
            elif drink.release_profile == ReleaseProfile.SLOW:
                peak_time = now + drink.release_duration * SLOW_PEAK_FRACTION
            else:
                peak_time = now + drink.release_duration / 2

        return cls(
            drink_id=drink.id,
            start_time=now,
            peak_time=peak_time,
            release_end=release_end,
            end_time=release_end + drink.crash_duration,
            peak_boost=boost,
            peak_caffeine=boost,
            current_boost=boost if drink.release_profile == ReleaseProfile.INSTANT else 0.0,
            last_update=now,
        )

    def is_releasing(self, now: float) -> bool:
        return self.start_time <= now < self.release_end

    def is_crashing(self, now: float) -> bool:
        return self.release_end <= now < self.end_time

    def is_expired(self, now: float) -> bool:
        return now >= self.end_time
