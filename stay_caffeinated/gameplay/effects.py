"""
Drink effect calculations - release curves, crashes, synergy and tolerance.
NO UI DEPENDENCIES.

Everything here is a pure function of its arguments except the optional
named modifiers, which scale the final combined caffeine change.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .catalog import DRINK_DEFINITIONS, ActiveEffect, ReleaseProfile
from .constants import (
    CAFFEINE_DECAY_PER_MINUTE, CAFFEINE_MAX, CAFFEINE_MIN,
    CRASH_DURATION_PER_SEVERITY, CRASH_INTENSITY_SCALE, INSTANT_HOLD_FRACTION,
    SLOW_PEAK_FRACTION, SYNERGY_ENERGY_ESPRESSO, SYNERGY_TEA_COFFEE,
    SYNERGY_WATER, TOLERANCE_FLOOR, TOLERANCE_PER_DRINK, TOLERANCE_WINDOW,
    WATER_STABILITY_BONUS,
)


# Area under each release curve for a unit peak over a unit window.
# Dividing by it turns the curve into a release rate that delivers exactly
# the drink's boost over the release window.
RELEASE_CURVE_AREA: Dict[ReleaseProfile, float] = {
    ReleaseProfile.INSTANT: INSTANT_HOLD_FRACTION + (1 - INSTANT_HOLD_FRACTION) / 2,
    ReleaseProfile.SLOW: 0.5,
    ReleaseProfile.MODERATE: 2 / math.pi,
}


class ModifierType(Enum):
    MULTIPLIER = "multiplier"
    ADDITIVE = "additive"


@dataclass(frozen=True)
class EffectModifier:
    """A named adjustment applied to the combined caffeine change."""
    type: ModifierType
    value: float
    source: str = ""


@dataclass(frozen=True)
class CombinedEffect:
    """Aggregate of every active effect at one instant."""
    total_caffeine: float
    stability_bonus: float
    crash_risk: float
    synergy_bonus: float
    active_count: int


@dataclass(frozen=True)
class ConsumptionAdvice:
    drink_id: Optional[str]
    wait_time: float
    reason: str


def _as_profile(profile: Union[ReleaseProfile, str, None]) -> Optional[ReleaseProfile]:
    if profile is None or isinstance(profile, ReleaseProfile):
        return profile
    return ReleaseProfile(profile)


class DrinkEffectCalculator:
    """
    Drink effect math.

    Usage:
        calc = DrinkEffectCalculator()
        calc.calculate_release_curve("moderate", 1000, 2000, 30)  # -> 30.0
        calc.calculate_synergy(["water", "tea", "coffee"])        # -> 0.25
    """

    def __init__(self):
        self._modifiers: Dict[str, EffectModifier] = {}

    # =========================================================================
    # CURVES
    # =========================================================================

    def calculate_release_curve(
        self,
        profile: Union[ReleaseProfile, str, None],
        elapsed: float,
        total_duration: float,
        peak_boost: float
    ) -> float:
        """
        Contribution of a drink `elapsed` ms into its release window.

        instant:  full peak at t=0, held briefly, then linear decay to 0
        slow:     linear ramp to the peak at 80% of the window, taper to 0
        moderate: sine bell, 0 at both ends, peak at the midpoint
        Always exactly 0 outside [0, total_duration).
        """
        profile = _as_profile(profile)
        if profile is None or total_duration <= 0:
            return 0.0
        if elapsed < 0 or elapsed >= total_duration:
            return 0.0

        progress = elapsed / total_duration

        if profile == ReleaseProfile.INSTANT:
            if progress < INSTANT_HOLD_FRACTION:
                return peak_boost
            return peak_boost * (1 - (progress - INSTANT_HOLD_FRACTION) / (1 - INSTANT_HOLD_FRACTION))

        if profile == ReleaseProfile.SLOW:
            if progress <= SLOW_PEAK_FRACTION:
                return peak_boost * (progress / SLOW_PEAK_FRACTION)
            return peak_boost * (1 - (progress - SLOW_PEAK_FRACTION) / (1 - SLOW_PEAK_FRACTION))

        return peak_boost * math.sin(progress * math.pi)

    def calculate_release_rate(
        self,
        profile: Union[ReleaseProfile, str, None],
        elapsed: float,
        total_duration: float,
        peak_boost: float
    ) -> float:
        """
        Caffeine per ms delivered at `elapsed`.
        Integrates to `peak_boost` over the whole release window.
        """
        profile = _as_profile(profile)
        if profile is None or total_duration <= 0:
            return 0.0
        curve = self.calculate_release_curve(profile, elapsed, total_duration, peak_boost)
        return curve / (total_duration * RELEASE_CURVE_AREA[profile])

    def calculate_crash_effect(
        self,
        severity: float,
        elapsed: float,
        peak_caffeine: float
    ) -> float:
        """
        Crash rate (caffeine per second, <= 0) `elapsed` ms after release ends.

        Exponential decay: strongest right after the release window, weaker
        with every ms that passes. Scales with severity and peak caffeine.
        """
        if severity <= 0:
            return 0.0

        crash_duration = severity * CRASH_DURATION_PER_SEVERITY
        intensity = math.exp(-2 * max(0.0, elapsed) / crash_duration) * severity
        return -(intensity * peak_caffeine * CRASH_INTENSITY_SCALE)

    # =========================================================================
    # COMBINATIONS
    # =========================================================================

    def calculate_synergy(self, active_drinks: Iterable[str]) -> float:
        """
        Bonus (or penalty) from drinks active together.
        Pairwise rules stack additively; unlisted pairs add nothing.
        """
        drinks = set(active_drinks)
        if len(drinks) < 2:
            return 0.0

        bonus = 0.0
        if "water" in drinks:
            bonus += SYNERGY_WATER
        if {"tea", "coffee"} <= drinks:
            bonus += SYNERGY_TEA_COFFEE
        if {"energyDrink", "espresso"} <= drinks:
            bonus += SYNERGY_ENERGY_ESPRESSO
        return bonus

    def calculate_combined_effects(
        self,
        effects: Sequence[ActiveEffect],
        now: float
    ) -> CombinedEffect:
        """Aggregate every effect's contribution at `now`."""
        total_release = 0.0
        total_crash = 0.0
        active_drinks: List[str] = []

        for effect in effects:
            drink = DRINK_DEFINITIONS.get(effect.drink_id)
            if drink is None or now < effect.start_time or effect.is_expired(now):
                continue

            if effect.drink_id not in active_drinks:
                active_drinks.append(effect.drink_id)

            if effect.is_releasing(now):
                total_release += self.calculate_release_curve(
                    drink.release_profile,
                    now - effect.start_time,
                    effect.release_end - effect.start_time,
                    effect.peak_boost,
                )
            else:
                total_crash += self.calculate_crash_effect(
                    drink.crash_severity,
                    now - effect.release_end,
                    effect.peak_caffeine,
                )

        synergy = self.calculate_synergy(active_drinks)
        total = total_release * (1 + synergy) + total_crash

        return CombinedEffect(
            total_caffeine=self.apply_modifiers(total),
            stability_bonus=WATER_STABILITY_BONUS if "water" in active_drinks else 0.0,
            crash_risk=abs(total_crash),
            synergy_bonus=synergy,
            active_count=len(active_drinks),
        )

    def calculate_tolerance(
        self,
        history: Iterable,
        now: float,
        rate: float = TOLERANCE_PER_DRINK
    ) -> float:
        """
        Effectiveness multiplier from recent consumption.
        Each drink in the trailing hour costs `rate`; never below 0.5.
        """
        cutoff = now - TOLERANCE_WINDOW
        recent = sum(1 for record in history if cutoff < record.timestamp <= now)
        return max(TOLERANCE_FLOOR, 1.0 - recent * rate)

    def predict_caffeine_levels(
        self,
        start_level: float,
        effects: Sequence[ActiveEffect],
        now: float,
        horizon_minutes: int
    ) -> List[float]:
        """One sample per minute for minutes 0..horizon_minutes inclusive."""
        predictions: List[float] = []
        level = start_level

        for minute in range(horizon_minutes + 1):
            combined = self.calculate_combined_effects(effects, now + minute * 60_000)
            decay = 0.0 if minute == 0 else CAFFEINE_DECAY_PER_MINUTE
            level = min(CAFFEINE_MAX, max(CAFFEINE_MIN, level + combined.total_caffeine - decay))
            predictions.append(level)

        return predictions

    # =========================================================================
    # MODIFIERS
    # =========================================================================

    def add_modifier(self, name: str, modifier: EffectModifier) -> None:
        self._modifiers[name] = modifier

    def remove_modifier(self, name: str) -> None:
        self._modifiers.pop(name, None)

    def get_modifiers(self) -> Dict[str, EffectModifier]:
        return dict(self._modifiers)

    def apply_modifiers(self, value: float) -> float:
        """Apply named modifiers in the order they were added."""
        result = value
        for modifier in self._modifiers.values():
            if modifier.type == ModifierType.MULTIPLIER:
                result *= modifier.value
            elif modifier.type == ModifierType.ADDITIVE:
                result += modifier.value
        return result

    def reset(self) -> None:
        self._modifiers.clear()


def get_optimal_consumption_timing(
    current_caffeine: float,
    target_min: float,
    target_max: float,
    available_drinks: Iterable[str]
) -> ConsumptionAdvice:
    """Suggest what (if anything) to drink to get back into the band."""
    if target_min <= current_caffeine <= target_max:
        return ConsumptionAdvice(None, 0.0, "Already in optimal caffeine range")

    if current_caffeine > target_max:
        return ConsumptionAdvice(
            "water",
            0.0,
            f"Caffeine above optimal ({current_caffeine:.0f} > {target_max:g}), "
            "water recommended for stability",
        )

    deficit = target_min - current_caffeine
    best: Optional[str] = None
    for drink_id in available_drinks:
        drink = DRINK_DEFINITIONS.get(drink_id)
        if drink is None or not drink.has_caffeine:
            continue
        if best is None or abs(deficit - drink.caffeine_boost) < abs(deficit - DRINK_DEFINITIONS[best].caffeine_boost):
            best = drink_id

    if best is None:
        return ConsumptionAdvice(None, 60_000.0, "No caffeinated drink available, wait for cooldowns")

    return ConsumptionAdvice(
        best,
        0.0,
        f"Caffeine below optimal ({current_caffeine:.0f} < {target_min:g})",
    )
