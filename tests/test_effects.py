"""
Tests for DrinkEffectCalculator.
"""
import math

import pytest

from stay_caffeinated.gameplay.catalog import ActiveEffect, ReleaseProfile, get_drink
from stay_caffeinated.gameplay.drinks import ConsumptionRecord
from stay_caffeinated.gameplay.effects import (
    DrinkEffectCalculator, EffectModifier, ModifierType, get_optimal_consumption_timing,
)


class TestReleaseCurves:
    """Tests for release curve shapes."""

    def test_instant_full_at_start(self):
        """Instant release is at full strength at t=0."""
        calc = DrinkEffectCalculator()
        assert calc.calculate_release_curve("instant", 0, 500, 50) == 50

    def test_instant_zero_after_window(self):
        """Instant release is exactly zero past its window."""
        calc = DrinkEffectCalculator()
        assert calc.calculate_release_curve("instant", 600, 500, 50) == 0
        assert calc.calculate_release_curve("instant", 500, 500, 50) == 0

    def test_instant_decreasing(self):
        """Instant release never increases over the window."""
        calc = DrinkEffectCalculator()
        values = [calc.calculate_release_curve(ReleaseProfile.INSTANT, t, 500, 50) for t in range(0, 500, 10)]
        assert all(a >= b for a, b in zip(values, values[1:]))

    def test_moderate_symmetric(self):
        """Moderate bell curve is symmetric around the midpoint."""
        calc = DrinkEffectCalculator()
        early = calc.calculate_release_curve("moderate", 500, 2000, 30)
        late = calc.calculate_release_curve("moderate", 1500, 2000, 30)
        assert early == pytest.approx(late)

    def test_moderate_peaks_at_midpoint(self):
        """Moderate curve equals the peak at the midpoint and is 0 at t=0."""
        calc = DrinkEffectCalculator()
        assert calc.calculate_release_curve("moderate", 1000, 2000, 30) == pytest.approx(30)
        assert calc.calculate_release_curve("moderate", 0, 2000, 30) == 0

    def test_slow_peaks_at_80_percent(self):
        """Slow curve reaches the peak at 80% of the window."""
        calc = DrinkEffectCalculator()
        assert calc.calculate_release_curve("slow", 2400, 3000, 15) == pytest.approx(15)

    def test_slow_continuous_and_rising(self):
        """Slow curve rises up to the peak with no jump at the 80% mark."""
        calc = DrinkEffectCalculator()
        rising = [calc.calculate_release_curve("slow", t, 3000, 15) for t in range(0, 2401, 100)]
        assert rising == sorted(rising)
        before = calc.calculate_release_curve("slow", 2399, 3000, 15)
        after = calc.calculate_release_curve("slow", 2401, 3000, 15)
        assert before == pytest.approx(after, abs=0.05)

    def test_no_profile_is_zero(self):
        """Water (no profile) contributes nothing."""
        calc = DrinkEffectCalculator()
        assert calc.calculate_release_curve(None, 100, 3000, 0) == 0

    def test_release_rate_integrates_to_boost(self):
        """Summing the release rate over the window delivers the whole boost."""
        calc = DrinkEffectCalculator()
        for profile, duration in (("slow", 3000), ("moderate", 2000), ("instant", 500)):
            total = sum(
                calc.calculate_release_rate(profile, t + 0.5, duration, 30)
                for t in range(duration)
            )
            assert total == pytest.approx(30, rel=0.01)


class TestCrashEffect:
    """Tests for crash decay."""

    def test_zero_severity_no_crash(self):
        """No severity, no crash."""
        assert DrinkEffectCalculator().calculate_crash_effect(0, 0, 80) == 0

    def test_crash_is_negative(self):
        """Crashes pull caffeine down."""
        assert DrinkEffectCalculator().calculate_crash_effect(5, 0, 80) < 0

    def test_crash_decays_over_time(self):
        """Crash magnitude strictly decreases as time passes."""
        calc = DrinkEffectCalculator()
        values = [abs(calc.calculate_crash_effect(5, t, 80)) for t in (0, 100, 400, 900)]
        assert values == sorted(values, reverse=True)
        assert len(set(values)) == 4

    def test_crash_grows_with_severity_and_peak(self):
        """Harsher drinks and higher peaks crash harder."""
        calc = DrinkEffectCalculator()
        assert abs(calc.calculate_crash_effect(8, 100, 80)) > abs(calc.calculate_crash_effect(2, 100, 80))
        assert abs(calc.calculate_crash_effect(5, 100, 90)) > abs(calc.calculate_crash_effect(5, 100, 40))


class TestSynergy:
    """Tests for drink combination rules."""

    def test_single_drink_no_synergy(self):
        """Fewer than two drinks never synergize."""
        assert DrinkEffectCalculator().calculate_synergy(["coffee"]) == 0

    def test_water_tea_coffee_stack(self):
        """Water and tea+coffee bonuses stack to exactly 0.25."""
        assert DrinkEffectCalculator().calculate_synergy(["water", "tea", "coffee"]) == pytest.approx(0.25)

    def test_energy_espresso_penalty(self):
        """Energy drink with espresso is penalized."""
        assert DrinkEffectCalculator().calculate_synergy(["energyDrink", "espresso"]) == pytest.approx(-0.20)

    def test_unlisted_pair(self):
        """Pairs without a rule add nothing."""
        assert DrinkEffectCalculator().calculate_synergy(["tea", "espresso"]) == 0


class TestTolerance:
    """Tests for tolerance from recent consumption."""

    def test_empty_history(self):
        """No history means full effectiveness."""
        assert DrinkEffectCalculator().calculate_tolerance([], 0) == 1.0

    def test_each_drink_costs_five_percent(self):
        """Three recent drinks leave 85% effectiveness."""
        history = [ConsumptionRecord("coffee", t, 30) for t in (1000, 2000, 3000)]
        assert DrinkEffectCalculator().calculate_tolerance(history, 4000) == pytest.approx(0.85)

    def test_floor_at_half(self):
        """Twenty recent drinks cap effectiveness at exactly 0.5."""
        history = [ConsumptionRecord("tea", t * 1000, 15) for t in range(20)]
        assert DrinkEffectCalculator().calculate_tolerance(history, 30_000) == 0.5

    def test_old_entries_excluded(self):
        """Consumption older than an hour does not count."""
        history = [ConsumptionRecord("coffee", 0, 30), ConsumptionRecord("coffee", 3_000_000, 30)]
        assert DrinkEffectCalculator().calculate_tolerance(history, 3_700_000) == pytest.approx(0.95)


class TestCombinedEffects:
    """Tests for aggregating active effects."""

    def test_water_adds_stability(self):
        """Active water gives the stability bonus."""
        water = ActiveEffect.create(get_drink("water"), 0, 0)
        combined = DrinkEffectCalculator().calculate_combined_effects([water], 500)
        assert combined.stability_bonus == pytest.approx(0.2)
        assert combined.active_count == 1

    def test_release_and_synergy(self):
        """Releasing drinks are summed and boosted by synergy."""
        calc = DrinkEffectCalculator()
        coffee = ActiveEffect.create(get_drink("coffee"), 0, 30)
        water = ActiveEffect.create(get_drink("water"), 0, 0)
        combined = calc.calculate_combined_effects([coffee, water], 1000)
        assert combined.synergy_bonus == pytest.approx(0.15)
        assert combined.total_caffeine == pytest.approx(30 * 1.15)

    def test_crashing_drink_reports_risk(self):
        """A drink past its release window contributes a crash."""
        coffee = ActiveEffect.create(get_drink("coffee"), 0, 30)
        combined = DrinkEffectCalculator().calculate_combined_effects([coffee], 2100)
        assert combined.total_caffeine < 0
        assert combined.crash_risk == pytest.approx(-combined.total_caffeine)

    def test_expired_effects_ignored(self):
        """Effects past their crash window count for nothing."""
        coffee = ActiveEffect.create(get_drink("coffee"), 0, 30)
        combined = DrinkEffectCalculator().calculate_combined_effects([coffee], 10_000)
        assert combined.active_count == 0
        assert combined.total_caffeine == 0

    def test_modifiers_apply_in_order(self):
        """Named modifiers scale the final total, in the order they were added."""
        calc = DrinkEffectCalculator()
        calc.add_modifier("double", EffectModifier(ModifierType.MULTIPLIER, 2.0))
        calc.add_modifier("plus", EffectModifier(ModifierType.ADDITIVE, 1.0))
        coffee = ActiveEffect.create(get_drink("coffee"), 0, 30)
        combined = calc.calculate_combined_effects([coffee], 1000)
        assert combined.total_caffeine == pytest.approx(61)

        calc.remove_modifier("double")
        assert calc.apply_modifiers(10) == pytest.approx(11)
        calc.reset()
        assert calc.apply_modifiers(10) == 10


class TestPrediction:
    """Tests for short-horizon caffeine prediction."""

    def test_sample_count(self):
        """A horizon of N minutes yields N+1 samples."""
        assert len(DrinkEffectCalculator().predict_caffeine_levels(50, [], 0, 10)) == 11

    def test_decays_without_effects(self):
        """Without effects caffeine drifts down and never goes negative."""
        levels = DrinkEffectCalculator().predict_caffeine_levels(1.0, [], 0, 5)
        assert levels[0] == 1.0
        assert levels == sorted(levels, reverse=True)
        assert min(levels) == 0


class TestConsumptionTiming:
    """Tests for consumption advice."""

    def test_in_range_no_drink(self):
        """Nothing to drink inside the band."""
        advice = get_optimal_consumption_timing(50, 30, 70, ["coffee"])
        assert advice.drink_id is None

    def test_high_suggests_water(self):
        """Above the band, water is suggested."""
        assert get_optimal_consumption_timing(85, 30, 70, ["coffee"]).drink_id == "water"

    def test_low_suggests_closest_boost(self):
        """Below the band, the boost nearest the deficit wins."""
        advice = get_optimal_consumption_timing(0, 30, 70, ["tea", "coffee", "energyDrink"])
        assert advice.drink_id == "coffee"
        assert advice.wait_time == 0

    def test_nothing_available_waits(self):
        """With no caffeinated drink available, advice is to wait."""
        advice = get_optimal_consumption_timing(0, 30, 70, ["water"])
        assert advice.drink_id is None
        assert advice.wait_time > 0
