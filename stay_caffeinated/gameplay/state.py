"""
Game state - the canonical stats block, phase machine and subscriptions.
NO UI DEPENDENCIES.

Phases:
    menu -> playing <-> paused
    playing -> gameOver | victory   (terminal until return_to_menu)

Every mutating call publishes one immutable GameStateData snapshot to all
subscribers, in subscription order. Inside batch_updates() publishing is
deferred and a single snapshot goes out when the outermost batch closes.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterator, List, Optional

from .constants import (
    CAFFEINE_MAX, CAFFEINE_MIN, CAFFEINE_START, HEALTH_MAX, HEALTH_MIN,
    WORKDAY_START_HOUR,
)
from .difficulty import (
    DEFAULT_DIFFICULTY, CaffeineRange, get_difficulty_config, get_optimal_range,
)

logger = logging.getLogger(__name__)


class GamePhase(Enum):
    MENU = "menu"
    PLAYING = "playing"
    PAUSED = "paused"
    GAME_OVER = "gameOver"
    VICTORY = "victory"


TERMINAL_PHASES = (GamePhase.GAME_OVER, GamePhase.VICTORY)


class EndReason(Enum):
    PASS_OUT = "passOut"
    EXPLOSION = "explosion"
    VICTORY = "victory"


@dataclass(frozen=True)
class GameStats:
    current_caffeine_level: float = CAFFEINE_START
    current_health_level: float = HEALTH_MAX
    score: int = 0
    time_elapsed: float = 0.0       # simulation ms, frozen while paused
    drinks_consumed: int = 0
    is_in_optimal_zone: bool = True
    streak: float = 0.0             # seconds spent continuously in the optimal zone


@dataclass(frozen=True)
class GameConfig:
    difficulty: str = DEFAULT_DIFFICULTY
    sound_enabled: bool = True
    particles_enabled: bool = True
    screen_shake_enabled: bool = True


@dataclass(frozen=True)
class GameStateData:
    """Read-only snapshot handed to subscribers."""
    phase: GamePhase
    stats: GameStats
    config: GameConfig
    day: int = 1
    game_minutes: float = 0.0       # in-game minutes since the workday started
    end_reason: Optional[EndReason] = None

    @property
    def difficulty(self) -> str:
        return self.config.difficulty

    @property
    def is_paused(self) -> bool:
        return self.phase == GamePhase.PAUSED

    @property
    def is_over(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def time_of_day(self) -> str:
        """In-game clock, "HH:MM", starting at 09:00."""
        total = WORKDAY_START_HOUR * 60 + int(self.game_minutes)
        return f"{(total // 60) % 24:02d}:{total % 60:02d}"

    def to_dict(self) -> dict:
        """Plain camelCase data for UI layers."""
        return {
            "state": self.phase.value,
            "stats": {
                "currentCaffeineLevel": self.stats.current_caffeine_level,
                "currentHealthLevel": self.stats.current_health_level,
                "score": self.stats.score,
                "timeElapsed": self.stats.time_elapsed,
                "drinksConsumed": self.stats.drinks_consumed,
                "isInOptimalZone": self.stats.is_in_optimal_zone,
                "streak": self.stats.streak,
            },
            "config": {
                "difficulty": self.config.difficulty,
                "soundEnabled": self.config.sound_enabled,
                "particlesEnabled": self.config.particles_enabled,
                "screenShakeEnabled": self.config.screen_shake_enabled,
            },
            "day": self.day,
            "timeOfDay": self.time_of_day,
            "endReason": self.end_reason.value if self.end_reason else None,
        }


StateListener = Callable[[GameStateData], None]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class GameStateManager:
    """
    Single owner of the game's mutable state.

    Usage:
        manager = GameStateManager()
        unsubscribe = manager.subscribe(lambda snapshot: print(snapshot.phase))
        manager.start_game()
        manager.update_caffeine_level(-5)
        unsubscribe()
    """

    def __init__(self, config: Optional[GameConfig] = None):
        config = config or GameConfig()
        get_difficulty_config(config.difficulty)
        self._config = config
        self._phase = GamePhase.MENU
        self._zone_shift = 0.0
        self._stats = self._initial_stats()
        self._day = 1
        self._game_minutes = 0.0
        self._end_reason: Optional[EndReason] = None
        self._next_day_pending = False
        self._listeners: List[StateListener] = []
        self._batch_depth = 0
        self._pending_publish = False

    def _initial_stats(self) -> GameStats:
        return GameStats(
            is_in_optimal_zone=self.get_optimal_range().contains(CAFFEINE_START),
        )

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def stats(self) -> GameStats:
        return self._stats

    @property
    def config(self) -> GameConfig:
        return self._config

    def get_state(self) -> GameStateData:
        return GameStateData(
            phase=self._phase,
            stats=self._stats,
            config=self._config,
            day=self._day,
            game_minutes=self._game_minutes,
            end_reason=self._end_reason,
        )

    def get_optimal_range(self) -> CaffeineRange:
        """The tier's band, narrowed (or widened) by the current zone shift."""
        base = get_optimal_range(self._config.difficulty)
        if not self._zone_shift:
            return base
        low = base.min - self._zone_shift / 2
        high = base.max + self._zone_shift / 2
        if low > high:
            low = high = (base.min + base.max) / 2
        return CaffeineRange(
            min=_clamp(low, CAFFEINE_MIN, CAFFEINE_MAX),
            max=_clamp(high, CAFFEINE_MIN, CAFFEINE_MAX),
        )

    def is_playing(self) -> bool:
        return self._phase == GamePhase.PLAYING

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener. Returns an idempotent unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @contextmanager
    def batch_updates(self) -> Iterator["GameStateManager"]:
        """
        Collapse every publish inside the block into one snapshot.
        A block that raises publishes nothing.
        """
        self._batch_depth += 1
        pending = False
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                pending, self._pending_publish = self._pending_publish, False
        if pending:
            self._publish()

    def _publish(self) -> None:
        if self._batch_depth > 0:
            self._pending_publish = True
            return
        snapshot = self.get_state()
        for listener in list(self._listeners):
            # Unsubscribed earlier in this same notification pass
            if listener not in self._listeners:
                continue
            listener(snapshot)

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def start_game(self) -> bool:
        """Start from the menu, or restart the stats while already playing."""
        if self._phase not in (GamePhase.MENU, GamePhase.PLAYING):
            return False

        if self._next_day_pending:
            self._day += 1
            self._next_day_pending = False
        self._zone_shift = 0.0
        self._stats = self._initial_stats()
        self._game_minutes = 0.0
        self._end_reason = None
        self._phase = GamePhase.PLAYING
        logger.info(f"Game started on {self._config.difficulty} (day {self._day})")
        self._publish()
        return True

    def pause_game(self) -> bool:
        if self._phase != GamePhase.PLAYING:
            return False
        self._phase = GamePhase.PAUSED
        self._publish()
        return True

    def resume_game(self) -> bool:
        if self._phase != GamePhase.PAUSED:
            return False
        self._phase = GamePhase.PLAYING
        self._publish()
        return True

    def end_game(self, reason: EndReason) -> bool:
        """Move to gameOver or victory. Only a running game can end."""
        if self._phase != GamePhase.PLAYING:
            return False

        self._end_reason = reason
        if reason == EndReason.VICTORY:
            self._phase = GamePhase.VICTORY
            self._next_day_pending = True
        else:
            self._phase = GamePhase.GAME_OVER
        logger.info(
            f"Game ended ({reason.value}) with score {self._stats.score} "
            f"after {self._stats.time_elapsed / 1000:.1f}s"
        )
        self._publish()
        return True

    def return_to_menu(self) -> None:
        """Back to the menu from any phase. Config and day counter are kept."""
        self._phase = GamePhase.MENU
        self._zone_shift = 0.0
        self._stats = self._initial_stats()
        self._game_minutes = 0.0
        self._end_reason = None
        self._publish()

    # =========================================================================
    # STAT MUTATIONS
    # =========================================================================

    def update_caffeine_level(self, delta: float) -> None:
        """Adjust caffeine, clamped to 0-100, and recompute the zone flag."""
        self._set_caffeine(self._stats.current_caffeine_level + delta)
        self._publish()

    def update_health_level(self, delta: float) -> None:
        health = _clamp(self._stats.current_health_level + delta, HEALTH_MIN, HEALTH_MAX)
        self._stats = replace(self._stats, current_health_level=health)
        self._publish()

    def add_score(self, points: int) -> None:
        if points <= 0:
            return
        self._stats = replace(self._stats, score=self._stats.score + int(points))
        self._publish()

    def advance_time(self, dt: float, workday_duration: float) -> None:
        """
        Advance simulation time by dt ms.

        The in-game clock moves so that the tier's workday length passes
        over `workday_duration` ms.
        """
        workday_length = get_difficulty_config(self._config.difficulty).workday_length
        if workday_duration > 0:
            self._game_minutes += dt * workday_length / workday_duration

        streak = self._stats.streak + dt / 1000 if self._stats.is_in_optimal_zone else 0.0
        self._stats = replace(
            self._stats,
            time_elapsed=self._stats.time_elapsed + dt,
            streak=streak,
        )
        self._publish()

    def consume_drink(self, caffeine_amount: float) -> None:
        """Apply a drink's immediate caffeine and count it."""
        caffeine = self._stats.current_caffeine_level + caffeine_amount
        self._stats = replace(self._stats, drinks_consumed=self._stats.drinks_consumed + 1)
        self._set_caffeine(caffeine)
        self._publish()

    def _set_caffeine(self, level: float) -> None:
        level = _clamp(level, CAFFEINE_MIN, CAFFEINE_MAX)
        in_zone = self.get_optimal_range().contains(level)
        self._stats = replace(
            self._stats,
            current_caffeine_level=level,
            is_in_optimal_zone=in_zone,
            streak=self._stats.streak if in_zone else 0.0,
        )

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def set_difficulty(self, difficulty: str) -> None:
        """Raises InvalidDifficulty for unknown tiers."""
        get_difficulty_config(difficulty)
        self._config = replace(self._config, difficulty=difficulty)
        self._set_caffeine(self._stats.current_caffeine_level)
        self._publish()

    def set_optimal_zone_shift(self, shift: float) -> None:
        """
        Temporarily resize the optimal zone around its center.
        Negative values narrow it; 0 restores the tier's band.
        """
        if shift == self._zone_shift:
            return
        self._zone_shift = shift
        self._set_caffeine(self._stats.current_caffeine_level)
        self._publish()

    def set_config(self, **changes) -> None:
        """Merge config fields, e.g. set_config(sound_enabled=False)."""
        if "difficulty" in changes:
            get_difficulty_config(changes["difficulty"])
        self._config = replace(self._config, **changes)
        self._set_caffeine(self._stats.current_caffeine_level)
        self._publish()
