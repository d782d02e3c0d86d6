"""
Tests for GameStateManager.
"""
import pytest

from stay_caffeinated.errors import InvalidDifficulty
from stay_caffeinated.gameplay.state import (
    EndReason, GameConfig, GamePhase, GameStateData, GameStateManager, GameStats,
)


class TestPhases:
    """Tests for phase transitions."""

    def test_initial_state(self, state_manager):
        """A new manager sits at the menu with default stats."""
        state = state_manager.get_state()
        assert state.phase == GamePhase.MENU
        assert state.stats == GameStats()
        assert state.day == 1
        assert state.time_of_day == "09:00"

    def test_start_from_menu(self, state_manager):
        """Starting from the menu begins play."""
        assert state_manager.start_game()
        assert state_manager.is_playing()

    def test_pause_resume(self, state_manager):
        """Pause and resume only work from the matching phase."""
        assert not state_manager.pause_game()
        state_manager.start_game()
        assert state_manager.pause_game()
        assert not state_manager.pause_game()
        assert state_manager.get_state().is_paused
        assert state_manager.resume_game()
        assert not state_manager.resume_game()

    def test_end_only_while_playing(self, state_manager):
        """Ending from the menu or a terminal phase is refused."""
        assert not state_manager.end_game(EndReason.PASS_OUT)
        state_manager.start_game()
        assert state_manager.end_game(EndReason.PASS_OUT)
        assert state_manager.phase == GamePhase.GAME_OVER
        assert not state_manager.end_game(EndReason.VICTORY)
        assert state_manager.get_state().end_reason == EndReason.PASS_OUT

    def test_terminal_requires_menu(self, state_manager):
        """A finished game cannot restart without going back to the menu."""
        state_manager.start_game()
        state_manager.end_game(EndReason.EXPLOSION)
        assert not state_manager.start_game()
        state_manager.return_to_menu()
        assert state_manager.start_game()

    def test_restart_resets_stats(self, state_manager):
        """start_game while playing starts over."""
        state_manager.start_game()
        state_manager.add_score(500)
        state_manager.start_game()
        assert state_manager.stats.score == 0

    def test_victory_advances_day(self, state_manager):
        """The start after a victory is the next day."""
        state_manager.start_game()
        state_manager.end_game(EndReason.VICTORY)
        assert state_manager.phase == GamePhase.VICTORY
        state_manager.return_to_menu()
        assert state_manager.get_state().day == 1
        state_manager.start_game()
        assert state_manager.get_state().day == 2

    def test_menu_keeps_config(self, state_manager):
        """Returning to the menu keeps the chosen config."""
        state_manager.set_config(sound_enabled=False)
        state_manager.start_game()
        state_manager.return_to_menu()
        assert state_manager.config.sound_enabled is False


class TestStats:
    """Tests for stat mutations."""

    def test_caffeine_clamped(self, state_manager):
        """Caffeine never leaves 0-100."""
        state_manager.update_caffeine_level(500)
        assert state_manager.stats.current_caffeine_level == 100
        state_manager.update_caffeine_level(-500)
        assert state_manager.stats.current_caffeine_level == 0

    def test_health_clamped(self, state_manager):
        """Health never leaves 0-100."""
        state_manager.update_health_level(20)
        assert state_manager.stats.current_health_level == 100
        state_manager.update_health_level(-150)
        assert state_manager.stats.current_health_level == 0

    def test_zone_flag_follows_caffeine(self, state_manager):
        """The optimal-zone flag is recomputed with every caffeine change."""
        assert state_manager.stats.is_in_optimal_zone
        state_manager.update_caffeine_level(40)
        assert not state_manager.stats.is_in_optimal_zone

    def test_score_never_decreases(self, state_manager):
        """Negative score additions are ignored."""
        state_manager.add_score(100)
        state_manager.add_score(-50)
        assert state_manager.stats.score == 100

    def test_consume_drink_counts(self, state_manager):
        """A drink applies its caffeine and increments the count."""
        state_manager.consume_drink(20)
        assert state_manager.stats.drinks_consumed == 1
        assert state_manager.stats.current_caffeine_level == 70

    def test_advance_time(self, state_manager):
        """Simulation time, the in-game clock and the streak advance together."""
        state_manager.advance_time(90_000, 180_000)
        state = state_manager.get_state()
        assert state.stats.time_elapsed == 90_000
        assert state.stats.streak == pytest.approx(90)
        assert state.game_minutes == pytest.approx(240)
        assert state.time_of_day == "13:00"

    def test_leaving_zone_resets_streak(self, state_manager):
        """Leaving the zone zeroes the streak."""
        state_manager.advance_time(5000, 180_000)
        state_manager.update_caffeine_level(45)
        assert state_manager.stats.streak == 0

    def test_set_difficulty_validates(self, state_manager):
        """Unknown tiers are rejected; valid ones change the optimal band."""
        with pytest.raises(InvalidDifficulty):
            state_manager.set_difficulty("boss")
        state_manager.set_difficulty("founder")
        assert state_manager.get_state().difficulty == "founder"
        assert state_manager.get_optimal_range().min == 40

    def test_invalid_initial_config(self):
        """A bad difficulty in the initial config raises."""
        with pytest.raises(InvalidDifficulty):
            GameStateManager(GameConfig(difficulty="boss"))

    def test_zone_shift_narrows_and_restores(self, state_manager):
        """A negative shift takes half off each edge; starting a game clears it."""
        state_manager.start_game()
        state_manager.update_caffeine_level(-18)
        assert state_manager.stats.is_in_optimal_zone

        state_manager.set_optimal_zone_shift(-10)
        optimal = state_manager.get_optimal_range()
        assert (optimal.min, optimal.max) == (35, 65)
        assert not state_manager.stats.is_in_optimal_zone

        state_manager.start_game()
        optimal = state_manager.get_optimal_range()
        assert (optimal.min, optimal.max) == (30, 70)

    def test_zone_shift_never_inverts(self):
        """Narrowing past zero width collapses the zone onto its center."""
        state_manager = GameStateManager(GameConfig(difficulty="founder"))
        state_manager.set_optimal_zone_shift(-50)
        optimal = state_manager.get_optimal_range()
        assert (optimal.min, optimal.max) == (50, 50)


class TestSubscriptions:
    """Tests for snapshot publishing."""

    def test_listeners_in_order(self, state_manager):
        """Listeners run in subscription order and get a snapshot."""
        calls = []
        state_manager.subscribe(lambda s: calls.append(("a", s.phase)))
        state_manager.subscribe(lambda s: calls.append(("b", s.phase)))
        state_manager.start_game()
        assert calls == [("a", GamePhase.PLAYING), ("b", GamePhase.PLAYING)]

    def test_unsubscribe_idempotent(self, state_manager):
        """Unsubscribing twice is harmless."""
        calls = []
        unsubscribe = state_manager.subscribe(calls.append)
        unsubscribe()
        unsubscribe()
        state_manager.start_game()
        assert calls == []

    def test_unsubscribe_during_publish(self, state_manager):
        """A listener removed mid-publish does not run in that pass."""
        calls = []
        unsubscribe_b = None

        def first(snapshot):
            calls.append("a")
            unsubscribe_b()

        state_manager.subscribe(first)
        unsubscribe_b = state_manager.subscribe(lambda s: calls.append("b"))
        state_manager.start_game()
        assert calls == ["a"]

    def test_snapshots_immutable(self, state_manager):
        """Snapshots cannot be modified by listeners."""
        snapshot = state_manager.get_state()
        with pytest.raises(AttributeError):
            snapshot.stats.score = 10

    def test_batch_publishes_once(self, state_manager):
        """A batch of mutations yields one notification."""
        snapshots = []
        state_manager.subscribe(snapshots.append)
        with state_manager.batch_updates():
            state_manager.update_caffeine_level(5)
            with state_manager.batch_updates():
                state_manager.add_score(10)
            state_manager.update_health_level(-5)
        assert len(snapshots) == 1
        assert snapshots[0].stats.score == 10
        assert snapshots[0].stats.current_health_level == 95

    def test_failed_batch_publishes_nothing(self, state_manager):
        """An exception inside a batch suppresses the notification."""
        snapshots = []
        state_manager.subscribe(snapshots.append)
        with pytest.raises(RuntimeError):
            with state_manager.batch_updates():
                state_manager.add_score(10)
                raise RuntimeError("boom")
        assert snapshots == []


class TestSnapshotDict:
    """Tests for GameStateData.to_dict."""

    def test_camel_case_keys(self):
        """UI-facing dicts use camelCase."""
        data = GameStateData(GamePhase.PLAYING, GameStats(), GameConfig()).to_dict()
        assert data["state"] == "playing"
        assert data["stats"]["currentCaffeineLevel"] == 50
        assert data["config"]["difficulty"] == "junior"
        assert data["timeOfDay"] == "09:00"
        assert data["endReason"] is None
