"""
Power-ups - protein bars, vitamins and power naps.
NO UI DEPENDENCIES.

Power-ups are activated by the player and then run for a fixed duration.
Instant boosts (health, caffeine) are reported once in the activation
result; the lasting parts (crash reduction, slower depletion, productivity)
come from get_combined_effect() while the power-up is active.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .constants import MAX_ACTIVE_POWERUPS, POWERUP_DATA

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PowerUpDefinition:
    id: str
    name: str
    description: str
    duration: float
    cooldown: float
    cost: float = 0.0                  # nap time, informational
    caffeine_boost: float = 0.0
    health_boost: float = 0.0
    crash_reduction: float = 0.0       # fraction of the crash removed
    depletion_reduction: float = 0.0   # fraction of caffeine depletion removed
    productivity_multiplier: float = 1.0

    @property
    def is_instant(self) -> bool:
        return self.caffeine_boost > 0 or self.health_boost > 0


POWERUPS: Dict[str, PowerUpDefinition] = {
    powerup_id: PowerUpDefinition(id=powerup_id, **data)
    for powerup_id, data in POWERUP_DATA.items()
}
POWERUP_IDS = tuple(POWERUPS)


class PowerUpError(Enum):
    INVALID_POWERUP = "invalid_powerup"
    DISABLED = "disabled"
    ALREADY_ACTIVE = "already_active"
    COOLDOWN_ACTIVE = "cooldown_active"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class ActivationResult:
    success: bool
    powerup_id: str
    message: str
    error: Optional[PowerUpError] = None
    cooldown_remaining: float = 0.0
    caffeine_boost: float = 0.0
    health_boost: float = 0.0


@dataclass(frozen=True)
class ActivePowerUp:
    definition: PowerUpDefinition
    start_time: float
    end_time: float

    def get_remaining(self, now: float) -> float:
        return max(0.0, self.end_time - now)


@dataclass(frozen=True)
class CombinedPowerUpEffect:
    crash_reduction: float = 0.0
    depletion_reduction: float = 0.0
    productivity_multiplier: float = 1.0


class PowerUpTransition(Enum):
    EXPIRED = "expired"
    READY = "ready"


@dataclass(frozen=True)
class PowerUpNotice:
    transition: PowerUpTransition
    powerup: PowerUpDefinition
    timestamp: float


class PowerUpManager:
    """Tracks active power-ups and their cooldowns on the simulation clock."""

    def __init__(
        self,
        max_active: int = MAX_ACTIVE_POWERUPS,
        cooldown_multiplier: float = 1.0,
        enabled: bool = True
    ):
        self.max_active = max_active
        self.cooldown_multiplier = cooldown_multiplier
        self.enabled = enabled
        self._active: Dict[str, ActivePowerUp] = {}
        self._cooldown_ends: Dict[str, float] = {}

    def activate(self, powerup_id: str, now: float) -> ActivationResult:
        powerup = POWERUPS.get(powerup_id)
        if powerup is None:
            return self._reject(powerup_id, f"Unknown power-up: {powerup_id}", PowerUpError.INVALID_POWERUP)
        if not self.enabled:
            return self._reject(powerup_id, "Power-ups are disabled", PowerUpError.DISABLED)
        if powerup_id in self._active:
            return self._reject(powerup_id, f"{powerup.name} is already active", PowerUpError.ALREADY_ACTIVE)

        remaining = self.get_cooldown_remaining(powerup_id, now)
        if remaining > 0:
            return ActivationResult(
                success=False,
                powerup_id=powerup_id,
                message=f"{powerup.name} is on cooldown for {math.ceil(remaining / 1000)}s",
                error=PowerUpError.COOLDOWN_ACTIVE,
                cooldown_remaining=remaining,
            )
        if len(self._active) >= self.max_active:
            return self._reject(
                powerup_id,
                f"Only {self.max_active} power-ups can be active at once",
                PowerUpError.LIMIT_REACHED,
            )

        self._active[powerup_id] = ActivePowerUp(powerup, now, now + powerup.duration)
        self._cooldown_ends[powerup_id] = now + powerup.cooldown * self.cooldown_multiplier
        logger.debug(f"Activated {powerup_id} at {now:.0f}ms")
        return ActivationResult(
            success=True,
            powerup_id=powerup_id,
            message=f"Used {powerup.name}! {powerup.description}",
            caffeine_boost=powerup.caffeine_boost,
            health_boost=powerup.health_boost,
        )

    @staticmethod
    def _reject(powerup_id: str, message: str, error: PowerUpError) -> ActivationResult:
        logger.debug(f"Rejected power-up {powerup_id!r}: {error.value}")
        return ActivationResult(success=False, powerup_id=powerup_id, message=message, error=error)

    def can_activate(self, powerup_id: str, now: float) -> bool:
        return (
            self.enabled
            and powerup_id in POWERUPS
            and powerup_id not in self._active
            and self.get_cooldown_remaining(powerup_id, now) == 0
            and len(self._active) < self.max_active
        )

    def update(self, now: float) -> List[PowerUpNotice]:
        """Expire finished power-ups and report cooldowns that ran out."""
        notices: List[PowerUpNotice] = []
        for powerup_id, active in list(self._active.items()):
            if now >= active.end_time:
                del self._active[powerup_id]
                notices.append(PowerUpNotice(PowerUpTransition.EXPIRED, active.definition, now))

        for powerup_id, cooldown_end in list(self._cooldown_ends.items()):
            if now >= cooldown_end and powerup_id not in self._active:
                del self._cooldown_ends[powerup_id]
                notices.append(PowerUpNotice(PowerUpTransition.READY, POWERUPS[powerup_id], now))
        return notices

    def get_combined_effect(self) -> CombinedPowerUpEffect:
        """Strongest reductions win; productivity multipliers stack."""
        crash = 0.0
        depletion = 0.0
        productivity = 1.0
        for active in self._active.values():
            powerup = active.definition
            crash = max(crash, powerup.crash_reduction)
            depletion = max(depletion, powerup.depletion_reduction)
            productivity *= powerup.productivity_multiplier
        return CombinedPowerUpEffect(crash, depletion, productivity)

    def get_active_powerups(self) -> List[ActivePowerUp]:
        return list(self._active.values())

    def is_active(self, powerup_id: str) -> bool:
        return powerup_id in self._active

    def get_cooldown_remaining(self, powerup_id: str, now: float) -> float:
        cooldown_end = self._cooldown_ends.get(powerup_id)
        if cooldown_end is None:
            return 0.0
        return max(0.0, cooldown_end - now)

    def reset(self) -> None:
        self._active.clear()
        self._cooldown_ends.clear()
