"""
Tests for the drink catalog and DrinkConsumptionManager.
"""
import pytest

from stay_caffeinated.errors import InvalidDrink
from stay_caffeinated.gameplay.catalog import DRINK_IDS, ReleaseProfile, get_all_drinks, get_drink
from stay_caffeinated.gameplay.drinks import (
    ConsumptionError, DrinkConsumptionManager, recommend_drink,
)


class TestCatalog:
    """Tests for the static drink table."""

    def test_five_drinks_in_display_order(self):
        """Catalog order is tea, coffee, energy drink, espresso, water."""
        assert DRINK_IDS == ("tea", "coffee", "energyDrink", "espresso", "water")
        assert [d.id for d in get_all_drinks()] == list(DRINK_IDS)

    def test_coffee_parameters(self):
        """Coffee is a moderate 30-point drink with a 3s cooldown."""
        coffee = get_drink("coffee")
        assert coffee.caffeine_boost == 30
        assert coffee.release_profile == ReleaseProfile.MODERATE
        assert coffee.release_duration == 2000
        assert coffee.crash_severity == 5
        assert coffee.cooldown == 3000

    def test_water_has_no_caffeine(self):
        """Water never releases or crashes."""
        water = get_drink("water")
        assert not water.has_caffeine
        assert water.crash_duration == 0

    def test_strict_lookup_raises(self):
        """Unknown ids raise InvalidDrink, a KeyError."""
        with pytest.raises(InvalidDrink):
            get_drink("mocha")
        with pytest.raises(KeyError):
            get_drink("mocha")


class TestConsumption:
    """Tests for consume_drink and cooldowns."""

    def test_cooldown_blocks_then_clears(self, drink_manager):
        """Coffee at t is blocked at t+100 and allowed at t+3100."""
        assert drink_manager.consume_drink("coffee", 1000).success

        blocked = drink_manager.consume_drink("coffee", 1100)
        assert not blocked.success
        assert blocked.error == ConsumptionError.COOLDOWN_ACTIVE
        assert blocked.cooldown_remaining == pytest.approx(2900)
        assert blocked.message == "Coffee is on cooldown for 3s"

        assert drink_manager.consume_drink("coffee", 4100).success

    def test_cooldowns_are_per_drink(self, drink_manager):
        """One drink's cooldown does not block another."""
        drink_manager.consume_drink("coffee", 0)
        assert drink_manager.consume_drink("tea", 10).success

    def test_unknown_drink(self, drink_manager):
        """Unknown drinks fail with a message instead of raising."""
        result = drink_manager.consume_drink("mocha", 0)
        assert not result.success
        assert result.error == ConsumptionError.INVALID_DRINK
        assert result.message == "Unknown drink type: mocha"
        assert drink_manager.get_consumption_history() == []

    def test_failed_attempt_not_recorded(self, drink_manager):
        """Rejected attempts leave history untouched."""
        drink_manager.consume_drink("tea", 0)
        drink_manager.consume_drink("tea", 500)
        assert len(drink_manager.get_consumption_history()) == 1

    def test_instant_drink_returns_boost(self, drink_manager):
        """Instant drinks report their boost immediately."""
        result = drink_manager.consume_drink("energyDrink", 0)
        assert result.caffeine_boost == 50
        assert result.message.startswith("Consumed Energy Drink!")

    def test_gradual_drink_returns_no_immediate_boost(self, drink_manager):
        """Slow and moderate drinks deliver their boost over time."""
        assert drink_manager.consume_drink("tea", 0).caffeine_boost == 0
        assert drink_manager.consume_drink("coffee", 0).caffeine_boost == 0

    def test_effectiveness_scales_boost(self, drink_manager):
        """Effectiveness scales the recorded boost."""
        drink_manager.consume_drink("espresso", 0, effectiveness=0.5)
        record = drink_manager.get_consumption_history()[0]
        assert record.caffeine_amount == pytest.approx(20)

    def test_reconsumption_replaces_effect(self, drink_manager):
        """A second coffee replaces the first coffee's effect."""
        drink_manager.consume_drink("coffee", 0)
        drink_manager.consume_drink("coffee", 3500)
        effects = drink_manager.get_active_effects()
        assert len(effects) == 1
        assert effects[0].start_time == 3500

    def test_remaining_cooldown(self, drink_manager):
        """Remaining cooldown counts down to zero and never goes negative."""
        assert drink_manager.get_remaining_cooldown("tea", 0) == 0
        drink_manager.consume_drink("tea", 1000)
        assert drink_manager.get_remaining_cooldown("tea", 1500) == 1500
        assert drink_manager.get_remaining_cooldown("tea", 9000) == 0

    def test_can_consume(self, drink_manager):
        """can_consume_drink mirrors the cooldown."""
        assert drink_manager.can_consume_drink("water", 0)
        drink_manager.consume_drink("water", 0)
        assert not drink_manager.can_consume_drink("water", 999)
        assert drink_manager.can_consume_drink("water", 1000)
        assert not drink_manager.can_consume_drink("mocha", 0)


class TestEffectUpdates:
    """Tests for per-tick effect integration."""

    def test_moderate_release_delivers_boost(self, drink_manager):
        """Updating through coffee's release window delivers ~30 caffeine."""
        drink_manager.consume_drink("coffee", 0)
        delivered = 0.0
        now = 0.0
        while now < 2000:
            now += 1000 / 60
            delivered += drink_manager.update_effects(now).release_change
        assert delivered == pytest.approx(30, rel=0.01)

    def test_instant_release_not_double_counted(self, drink_manager):
        """Instant drinks add nothing more through update_effects."""
        drink_manager.consume_drink("espresso", 0)
        update = drink_manager.update_effects(500)
        assert update.release_change == 0
        assert update.active_drinks == ["espresso"]

    def test_crash_follows_release(self, drink_manager):
        """After the release window, the drink pulls caffeine down."""
        drink_manager.consume_drink("coffee", 0)
        drink_manager.update_effects(2000)
        update = drink_manager.update_effects(2500)
        assert update.crash_change < 0
        assert update.crashing_drinks == ["coffee"]

    def test_expired_effects_pruned(self, drink_manager):
        """Effects past their crash window disappear."""
        drink_manager.consume_drink("tea", 0)
        drink_manager.update_effects(10_000)
        assert drink_manager.get_active_effects() == []

    def test_peak_caffeine_tracked_during_release(self, drink_manager):
        """The highest caffeine seen while releasing is kept for the crash."""
        drink_manager.consume_drink("coffee", 0)
        drink_manager.update_effects(500, peak_caffeine_level=72)
        drink_manager.update_effects(1000, peak_caffeine_level=60)
        assert drink_manager.get_active_effects()[0].peak_caffeine == 72

    def test_active_effects_are_copies(self, drink_manager):
        """Mutating a returned effect does not affect the manager."""
        drink_manager.consume_drink("coffee", 0)
        drink_manager.get_active_effects()[0].peak_boost = 999
        assert drink_manager.get_active_effects()[0].peak_boost == 30


class TestStatsAndStatus:
    """Tests for aggregate queries."""

    def test_consumption_stats(self, drink_manager):
        """Four drinks over one minute: totals and rate."""
        drink_manager.consume_drink("tea", 0)
        drink_manager.consume_drink("coffee", 0)
        drink_manager.consume_drink("espresso", 30_000)
        drink_manager.consume_drink("water", 60_000)

        stats = drink_manager.get_consumption_stats()
        assert stats.total_drinks_consumed == 4
        assert stats.total_caffeine == pytest.approx(85)
        assert stats.drink_breakdown["coffee"] == 1
        assert stats.drink_breakdown["energyDrink"] == 0
        assert stats.last_drink_time == 60_000
        assert stats.average_consumption_rate == pytest.approx(4)

    def test_empty_stats(self, drink_manager):
        """No history, no rate."""
        stats = drink_manager.get_consumption_stats()
        assert stats.total_drinks_consumed == 0
        assert stats.last_drink_time is None
        assert stats.average_consumption_rate == 0

    def test_drink_statuses(self, drink_manager):
        """Statuses report cooldown and release state per drink."""
        drink_manager.consume_drink("coffee", 0)
        statuses = {s.drink.id: s for s in drink_manager.get_drink_statuses(1000)}
        assert len(statuses) == 5
        assert not statuses["coffee"].available
        assert statuses["coffee"].is_active
        assert statuses["coffee"].cooldown_remaining == pytest.approx(2000)
        assert statuses["tea"].available

    def test_reset(self, drink_manager):
        """Reset clears cooldowns, effects and history."""
        drink_manager.consume_drink("coffee", 0)
        drink_manager.reset()
        assert drink_manager.can_consume_drink("coffee", 1)
        assert drink_manager.get_active_effects() == []
        assert drink_manager.get_consumption_history() == []


class TestRecommendation:
    """Tests for recommend_drink."""

    def test_water_when_high(self, drink_manager):
        """At or above target, water is recommended."""
        assert recommend_drink(60, 50, 0, drink_manager) == "water"

    def test_closest_boost_when_low(self, drink_manager):
        """A 30-point deficit picks coffee."""
        assert recommend_drink(20, 50, 0, drink_manager) == "coffee"

    def test_skips_drinks_on_cooldown(self, drink_manager):
        """Drinks on cooldown are not recommended."""
        drink_manager.consume_drink("coffee", 0)
        assert recommend_drink(20, 50, 100, drink_manager) == "espresso"

    def test_nothing_available(self, drink_manager):
        """None when every candidate is cooling down."""
        drink_manager.consume_drink("water", 0)
        assert recommend_drink(60, 50, 100, drink_manager) is None
