"""
Drink consumption - cooldowns, active effects and consumption history.
NO UI DEPENDENCIES.
"""
import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional

from .catalog import (
    DRINK_DEFINITIONS, DRINK_IDS, ActiveEffect, DrinkDefinition, ReleaseProfile,
)
from .effects import DrinkEffectCalculator

logger = logging.getLogger(__name__)

# Longest slice used when integrating release and crash curves
INTEGRATION_STEP = 50.0  # ms


class ConsumptionError(Enum):
    INVALID_DRINK = "invalid_drink"
    COOLDOWN_ACTIVE = "cooldown_active"
    DRINKS_RESTRICTED = "drinks_restricted"


@dataclass(frozen=True)
class ConsumptionResult:
    """Outcome of a consumption attempt. Failures are values, not exceptions."""
    success: bool
    caffeine_boost: float
    message: str
    drink_id: str
    error: Optional[ConsumptionError] = None
    cooldown_remaining: float = 0.0


@dataclass(frozen=True)
class ConsumptionRecord:
    drink_id: str
    timestamp: float
    caffeine_amount: float  # boost at consumption time


@dataclass(frozen=True)
class EffectUpdate:
    """Caffeine delivered by every effect since the previous update."""
    caffeine_change: float
    release_change: float
    crash_change: float
    active_drinks: List[str] = field(default_factory=list)
    crashing_drinks: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConsumptionStats:
    total_drinks_consumed: int
    drink_breakdown: Dict[str, int]
    total_caffeine: float
    last_drink_time: Optional[float]
    average_consumption_rate: float  # drinks per minute


@dataclass(frozen=True)
class DrinkStatus:
    drink: DrinkDefinition
    available: bool
    is_active: bool
    is_crashing: bool
    cooldown_remaining: float


def _integrate(rate: Callable[[float], float], start: float, end: float) -> float:
    """Midpoint integration of a per-ms rate over [start, end)."""
    span = end - start
    if span <= 0:
        return 0.0
    steps = max(1, math.ceil(span / INTEGRATION_STEP))
    width = span / steps
    return sum(rate(start + (i + 0.5) * width) for i in range(steps)) * width


class DrinkConsumptionManager:
    """
    Owns cooldowns, active effects and history for the five drinks.

    At most one effect per drink: consuming a drink again replaces its
    previous effect outright, even if that effect has not finished.
    """

    def __init__(self, calculator: Optional[DrinkEffectCalculator] = None):
        self.calculator = calculator or DrinkEffectCalculator()
        self._last_consumed: Dict[str, Optional[float]] = {drink_id: None for drink_id in DRINK_IDS}
        self._effects: Dict[str, ActiveEffect] = {}
        self._history: List[ConsumptionRecord] = []

    # =========================================================================
    # CONSUMPTION
    # =========================================================================

    def consume_drink(
        self,
        drink_id: str,
        now: float,
        effectiveness: float = 1.0
    ) -> ConsumptionResult:
        """
        Try to consume a drink at `now`.

        `effectiveness` scales the drink's boost (difficulty and tolerance).
        Only instant drinks return their boost immediately; slow and
        moderate drinks deliver it through update_effects().
        """
        drink = DRINK_DEFINITIONS.get(drink_id)
        if drink is None:
            logger.debug(f"Rejected unknown drink {drink_id!r}")
            return ConsumptionResult(
                success=False,
                caffeine_boost=0.0,
                message=f"Unknown drink type: {drink_id}",
                drink_id=drink_id,
                error=ConsumptionError.INVALID_DRINK,
            )

        remaining = self.get_remaining_cooldown(drink_id, now)
        if remaining > 0:
            logger.debug(f"Rejected {drink_id}: {remaining:.0f}ms cooldown left")
            return ConsumptionResult(
                success=False,
                caffeine_boost=0.0,
                message=f"{drink.name} is on cooldown for {math.ceil(remaining / 1000)}s",
                drink_id=drink_id,
                error=ConsumptionError.COOLDOWN_ACTIVE,
                cooldown_remaining=remaining,
            )

        boost = drink.caffeine_boost * effectiveness
        self._effects[drink_id] = ActiveEffect.create(drink, now, boost)
        self._last_consumed[drink_id] = now
        self._history.append(ConsumptionRecord(drink_id, now, boost))

        immediate = boost if drink.release_profile == ReleaseProfile.INSTANT else 0.0
        logger.debug(f"Consumed {drink_id} at {now:.0f}ms: boost={boost:.2f} immediate={immediate:.2f}")

        return ConsumptionResult(
            success=True,
            caffeine_boost=immediate,
            message=f"Consumed {drink.name}! {drink.description}",
            drink_id=drink_id,
        )

    def can_consume_drink(self, drink_id: str, now: float) -> bool:
        if drink_id not in DRINK_DEFINITIONS:
            return False
        return self.get_remaining_cooldown(drink_id, now) == 0

    def get_remaining_cooldown(self, drink_id: str, now: float) -> float:
        drink = DRINK_DEFINITIONS.get(drink_id)
        last = self._last_consumed.get(drink_id)
        if drink is None or last is None:
            return 0.0
        return max(0.0, last + drink.cooldown - now)

    # =========================================================================
    # EFFECTS
    # =========================================================================

    def update_effects(
        self,
        now: float,
        peak_caffeine_level: Optional[float] = None
    ) -> EffectUpdate:
        """
        Advance every effect to `now`.

        Returns the caffeine each effect delivered since its last update:
        the release share for slow and moderate drinks, and the (negative)
        crash share for drinks past their release window. Effects whose
        crash window is over are pruned.
        """
        release_total = 0.0
        crash_total = 0.0
        active: List[str] = []
        crashing: List[str] = []

        for drink_id, effect in list(self._effects.items()):
            drink = DRINK_DEFINITIONS[drink_id]
            since = max(effect.last_update, effect.start_time)

            if effect.is_releasing(since) and peak_caffeine_level is not None:
                effect.peak_caffeine = max(effect.peak_caffeine, peak_caffeine_level)

            if drink.release_profile in (ReleaseProfile.SLOW, ReleaseProfile.MODERATE):
                duration = effect.release_end - effect.start_time
                release_total += _integrate(
                    lambda t: self.calculator.calculate_release_rate(
                        drink.release_profile, t - effect.start_time, duration, effect.peak_boost
                    ),
                    since,
                    min(now, effect.release_end),
                )

            if drink.crash_severity > 0:
                crash_total += _integrate(
                    lambda t: self.calculator.calculate_crash_effect(
                        drink.crash_severity, t - effect.release_end, effect.peak_caffeine
                    ) / 1000,
                    max(since, effect.release_end),
                    min(now, effect.end_time),
                )

            effect.last_update = max(effect.last_update, now)

            if effect.is_expired(now):
                del self._effects[drink_id]
                continue

            if effect.is_releasing(now):
                effect.is_active = True
                effect.current_boost = self.calculator.calculate_release_curve(
                    drink.release_profile,
                    now - effect.start_time,
                    effect.release_end - effect.start_time,
                    effect.peak_boost,
                )
                active.append(drink_id)
            elif effect.is_crashing(now):
                effect.is_active = False
                effect.current_boost = self.calculator.calculate_crash_effect(
                    drink.crash_severity, now - effect.release_end, effect.peak_caffeine
                )
                crashing.append(drink_id)

        return EffectUpdate(
            caffeine_change=release_total + crash_total,
            release_change=release_total,
            crash_change=crash_total,
            active_drinks=active,
            crashing_drinks=crashing,
        )

    def get_active_effects(self) -> List[ActiveEffect]:
        """Copies of the current effects; mutating them changes nothing."""
        return [replace(effect) for effect in self._effects.values()]

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_consumption_history(self) -> List[ConsumptionRecord]:
        return list(self._history)

    def get_consumption_stats(self) -> ConsumptionStats:
        breakdown = {drink_id: 0 for drink_id in DRINK_IDS}
        total_caffeine = 0.0
        for record in self._history:
            breakdown[record.drink_id] += 1
            total_caffeine += record.caffeine_amount

        last_time = self._history[-1].timestamp if self._history else None
        rate = 0.0
        if self._history:
            span_minutes = (self._history[-1].timestamp - self._history[0].timestamp) / 60_000
            if span_minutes > 0:
                rate = len(self._history) / span_minutes

        return ConsumptionStats(
            total_drinks_consumed=len(self._history),
            drink_breakdown=breakdown,
            total_caffeine=total_caffeine,
            last_drink_time=last_time,
            average_consumption_rate=rate,
        )

    def get_drink_statuses(self, now: float) -> List[DrinkStatus]:
        """Status of every drink, in catalog order."""
        statuses = []
        for drink in DRINK_DEFINITIONS.values():
            effect = self._effects.get(drink.id)
            remaining = self.get_remaining_cooldown(drink.id, now)
            statuses.append(DrinkStatus(
                drink=drink,
                available=remaining == 0,
                is_active=effect is not None and effect.is_releasing(now),
                is_crashing=effect is not None and effect.is_crashing(now),
                cooldown_remaining=remaining,
            ))
        return statuses

    def reset(self) -> None:
        self._last_consumed = {drink_id: None for drink_id in DRINK_IDS}
        self._effects.clear()
        self._history.clear()


def recommend_drink(
    current_caffeine: float,
    target_caffeine: float,
    now: float,
    manager: DrinkConsumptionManager
) -> Optional[str]:
    """
    Best available drink for reaching `target_caffeine`.

    Water when already at or above the target; otherwise the caffeinated
    drink whose boost is closest to the deficit. None if nothing suitable
    is off cooldown.
    """
    if current_caffeine >= target_caffeine:
        return "water" if manager.can_consume_drink("water", now) else None

    deficit = target_caffeine - current_caffeine
    candidates = [
        drink for drink in DRINK_DEFINITIONS.values()
        if drink.has_caffeine and manager.can_consume_drink(drink.id, now)
    ]
    if not candidates:
        return None

    best = min(candidates, key=lambda drink: abs(drink.caffeine_boost - deficit))
    return best.id
