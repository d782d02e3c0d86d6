"""
Game loop engine for Stay Caffeinated.
Drives the simulation tick by tick and reports what happened each tick.
"""

import logging
import math
import random
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator

from stay_caffeinated.engine.scheduler import AsyncioScheduler, Scheduler
from stay_caffeinated.gameplay.achievements import AchievementTracker
from stay_caffeinated.gameplay.constants import (
    CAFFEINE_CRITICAL_HIGH, CAFFEINE_CRITICAL_LOW, CAFFEINE_WARNING_HIGH,
    CAFFEINE_WARNING_LOW, FRAME_RATE, HEALTH_CRITICAL_LOW, HEALTH_WARNING_LOW,
    IN_ZONE_HEALTH_FACTOR, MAX_DELTA_TIME, SCORE_OPTIMAL_MULTIPLIER,
    SCORE_PER_SECOND, TIME_MILESTONES, WORKDAY_REAL_MINUTES,
)
from stay_caffeinated.gameplay.difficulty import DifficultyManager
from stay_caffeinated.gameplay.drinks import (
    ConsumptionError, ConsumptionResult, DrinkConsumptionManager,
)
from stay_caffeinated.gameplay.events import EventTransition, WorkdayEventScheduler
from stay_caffeinated.gameplay.powerups import (
    ActivationResult, PowerUpManager, PowerUpTransition,
)
from stay_caffeinated.gameplay.scoring import ScoreTracker
from stay_caffeinated.gameplay.state import (
    EndReason, GamePhase, GameStateData, GameStateManager, TERMINAL_PHASES,
)

logger = logging.getLogger(__name__)


class GameEventType(Enum):
    MILESTONE = "milestone"
    WARNING = "warning"
    CRITICAL = "critical"
    ACHIEVEMENT = "achievement"
    STATE_CHANGE = "state_change"
    WORKDAY_EVENT = "workday_event"
    POWER_UP = "power_up"


class EventSeverity(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class GameEvent:
    type: GameEventType
    message: str
    severity: EventSeverity
    timestamp: float  # simulation ms


@dataclass(frozen=True)
class GameLoopUpdate:
    """Everything one tick changed."""

    state: GameStateData
    caffeine_change: float
    health_change: float
    score_change: int
    active_drinks: tuple[str, ...] = ()
    crashing_drinks: tuple[str, ...] = ()
    events: tuple[GameEvent, ...] = ()
    workday_event: str | None = None
    active_powerups: tuple[str, ...] = ()


@dataclass(frozen=True)
class GameLoopConfig:
    target_fps: int = FRAME_RATE
    max_delta_time: float = MAX_DELTA_TIME
    fixed_time_step: bool = True

    @property
    def frame_interval(self) -> float:
        return 1000 / self.target_fps

    @classmethod
    def from_settings(cls, settings) -> "GameLoopConfig":
        return cls(
            target_fps=settings.target_fps,
            max_delta_time=settings.max_delta_time_ms,
            fixed_time_step=settings.fixed_time_step,
        )


UpdateListener = Callable[[GameLoopUpdate], None]

# (threshold, falling?, event type, message)
CAFFEINE_THRESHOLDS = (
    (CAFFEINE_WARNING_LOW, True, GameEventType.WARNING, "Caffeine running low"),
    (CAFFEINE_CRITICAL_LOW, True, GameEventType.CRITICAL, "Caffeine critically low!"),
    (CAFFEINE_WARNING_HIGH, False, GameEventType.WARNING, "Caffeine getting high"),
    (CAFFEINE_CRITICAL_HIGH, False, GameEventType.CRITICAL, "Caffeine critically high!"),
)
HEALTH_THRESHOLDS = (
    (HEALTH_WARNING_LOW, True, GameEventType.WARNING, "Health is low"),
    (HEALTH_CRITICAL_LOW, True, GameEventType.CRITICAL, "Health critical!"),
)


def _crossed(previous: float, current: float, threshold: float, falling: bool) -> bool:
    if falling:
        return previous > threshold >= current
    return previous < threshold <= current


class GameLoopEngine:
    """
    Orchestrates one game: difficulty, drinks, state and achievements.

    The embedding application owns the engine instance. Frames come from
    the scheduler; tests and headless runs can also call update() directly.
    All drink timings, cooldowns, workday events, power-ups and achievement
    timers use simulation time (stats.time_elapsed), which does not advance
    while paused.
    """

    def __init__(
        self,
        state_manager: GameStateManager | None = None,
        config: GameLoopConfig | None = None,
        *,
        scheduler: Scheduler | None = None,
        drink_manager: DrinkConsumptionManager | None = None,
        achievement_tracker: AchievementTracker | None = None,
        event_scheduler: WorkdayEventScheduler | None = None,
        powerup_manager: PowerUpManager | None = None,
        rng: random.Random | None = None,
        workday_events: bool = True,
        workday_real_minutes: float = WORKDAY_REAL_MINUTES,
    ) -> None:
        """
        Without a scheduler the engine uses an AsyncioScheduler, which needs
        a running event loop: start() raises RuntimeError when called from
        plain synchronous code. Pass a ManualScheduler there instead.

        `rng` seeds the random workday events; pass random.Random(seed) for
        a reproducible day. `workday_events=False` turns them off.
        """
        self.config = config or GameLoopConfig()
        self.state_manager = state_manager or GameStateManager()
        self.scheduler = scheduler or AsyncioScheduler(self.config.frame_interval)
        difficulty = self.state_manager.config.difficulty
        self.difficulty_manager = DifficultyManager(difficulty)
        self.drink_manager = drink_manager or DrinkConsumptionManager()
        self.achievement_tracker = achievement_tracker
        self.event_scheduler = event_scheduler or WorkdayEventScheduler(
            difficulty, rng=rng, enabled=workday_events
        )
        self.powerup_manager = powerup_manager or PowerUpManager()
        self.workday_real_minutes = workday_real_minutes
        self.score_tracker = ScoreTracker()

        self._is_running = False
        self._is_paused = False
        self._frame_handle = None
        self._last_timestamp: float | None = None
        self._accumulator = 0.0
        self._tick_number = 0

        self._listeners: list[UpdateListener] = []
        self._pending_events: list[GameEvent] = []
        self._pending_score = 0.0
        self._time_milestones: set[float] = set()
        self._last_caffeine = self.state_manager.stats.current_caffeine_level
        self._last_health = self.state_manager.stats.current_health_level
        self.last_consumption: ConsumptionResult | None = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_running(self) -> bool:
        """Whether the engine is scheduling frames (paused or not)."""
        return self._is_running

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def tick_number(self) -> int:
        return self._tick_number

    def get_state(self) -> GameStateData:
        return self.state_manager.get_state()

    def get_workday_duration(self) -> float:
        """Real ms the current tier's workday lasts."""
        return self.difficulty_manager.get_workday_duration(self.workday_real_minutes)

    def on_update(self, listener: UpdateListener) -> Callable[[], None]:
        """Register a per-tick listener. Returns an idempotent unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Start (or continue) a game. No-op if already running."""
        if self._is_running:
            return

        phase = self.state_manager.phase
        if phase in TERMINAL_PHASES:
            self.state_manager.return_to_menu()
            phase = GamePhase.MENU

        if phase == GamePhase.MENU:
            self._begin_session()
            self.state_manager.start_game()
        elif phase == GamePhase.PAUSED:
            self.state_manager.resume_game()

        self._is_running = True
        self._is_paused = False
        self._last_timestamp = None
        self._accumulator = 0.0
        self._last_caffeine = self.state_manager.stats.current_caffeine_level
        self._last_health = self.state_manager.stats.current_health_level
        self._queue_event(GameEventType.STATE_CHANGE, "Game started", EventSeverity.INFO)
        logger.info(
            f"Game loop started (difficulty: {self.difficulty_manager.difficulty}, "
            f"fps: {self.config.target_fps})"
        )
        self._schedule()

    def stop(self) -> None:
        """Stop scheduling frames. Safe to call repeatedly."""
        self._cancel_frame()
        if not self._is_running:
            return
        self._is_running = False
        self._is_paused = False
        logger.info(f"Game loop stopped at tick {self._tick_number}")

    def destroy(self) -> None:
        """Stop and drop every listener."""
        self.stop()
        self._listeners.clear()

    def pause(self) -> bool:
        if not self._is_running or self._is_paused:
            return False

        self._is_paused = True
        self._cancel_frame()
        self.state_manager.pause_game()
        self._queue_event(GameEventType.STATE_CHANGE, "Game paused", EventSeverity.INFO)
        logger.info(f"Game loop paused at tick {self._tick_number}")
        self._emit_idle_update()
        return True

    def resume(self) -> bool:
        if not self._is_running or not self._is_paused:
            return False

        self._is_paused = False
        self._last_timestamp = None
        self._accumulator = 0.0
        self.state_manager.resume_game()
        self._queue_event(GameEventType.STATE_CHANGE, "Game resumed", EventSeverity.INFO)
        logger.info(f"Game loop resumed at tick {self._tick_number}")
        self._emit_idle_update()
        self._schedule()
        return True

    def reset(self) -> None:
        """Stop, clear every sub-manager and return to the menu. Keeps the tier."""
        self.stop()
        self.drink_manager.reset()
        self.drink_manager.calculator.reset()
        self.difficulty_manager.clear_custom_modifiers()
        self.event_scheduler.reset()
        self.powerup_manager.reset()
        self.score_tracker.reset()
        self._pending_events.clear()
        self._pending_score = 0.0
        self._time_milestones.clear()
        self._tick_number = 0
        self.last_consumption = None
        self.state_manager.return_to_menu()

    def _begin_session(self) -> None:
        self.drink_manager.reset()
        self.event_scheduler.reset()
        self.powerup_manager.reset()
        self.score_tracker.reset()
        self._pending_score = 0.0
        self._time_milestones.clear()
        self._tick_number = 0
        if self.achievement_tracker is not None:
            self.achievement_tracker.reset_session_stats(0.0)

    # =========================================================================
    # FRAMES
    # =========================================================================

    def _schedule(self) -> None:
        if self._frame_handle is None:
            self._frame_handle = self.scheduler.request_frame(self._on_frame)

    def _cancel_frame(self) -> None:
        if self._frame_handle is not None:
            self.scheduler.cancel_frame(self._frame_handle)
            self._frame_handle = None

    def _on_frame(self, timestamp: float) -> None:
        """
        Scheduler callback.
        Fail-fast: simulation and listener errors propagate to the scheduler.
        """
        self._frame_handle = None
        if not self._is_running or self._is_paused:
            return

        if self._last_timestamp is None:
            # First frame after start/resume only sets the baseline
            self._last_timestamp = timestamp
            self._schedule()
            return

        frame_start = time.perf_counter()
        delta = min(max(0.0, timestamp - self._last_timestamp), self.config.max_delta_time)
        self._last_timestamp = timestamp

        if self.config.fixed_time_step:
            step = self.config.frame_interval
            self._accumulator += delta
            while self._accumulator + 1e-9 >= step and self._can_tick():
                self.update(step)
                self._accumulator -= step
        else:
            self.update(delta)

        frame_duration = (time.perf_counter() - frame_start) * 1000
        if frame_duration > self.config.frame_interval:
            logger.warning(
                f"Frame at tick {self._tick_number} took {frame_duration:.1f}ms "
                f"(budget: {self.config.frame_interval:.1f}ms)"
            )

        if self._can_tick():
            self._schedule()

    def _can_tick(self) -> bool:
        return self._is_running and not self._is_paused

    # =========================================================================
    # TICK
    # =========================================================================

    def update(self, dt: float) -> GameLoopUpdate | None:
        """
        Advance the simulation by dt ms.
        Returns None (and does nothing) unless a game is being played.
        """
        state = self.state_manager
        if state.phase != GamePhase.PLAYING:
            return None

        difficulty = self.difficulty_manager
        seconds = dt / 1000
        workday_duration = self.get_workday_duration()
        score_before = state.stats.score
        caffeine_before = state.stats.current_caffeine_level
        health_before = state.stats.current_health_level

        with state.batch_updates():
            state.advance_time(dt, workday_duration)
            now = state.stats.time_elapsed
            self._update_workday_events(now)
            self._update_powerups(now)
            modifiers = self.event_scheduler.get_modifiers()
            boosts = self.powerup_manager.get_combined_effect()

            effects = self.drink_manager.update_effects(now, caffeine_before)
            crash = effects.crash_change * difficulty.get_crash_severity() * (1 - boosts.crash_reduction)
            depletion = (
                difficulty.get_caffeine_depletion_rate(seconds)
                * modifiers.caffeine_multiplier
                * (1 - boosts.depletion_reduction)
            )
            state.update_caffeine_level(effects.release_change + crash - depletion)

            in_zone = state.stats.is_in_optimal_zone
            drain = difficulty.get_health_depletion_rate(seconds) * modifiers.health_multiplier
            state.update_health_level(-drain * (IN_ZONE_HEALTH_FACTOR if in_zone else 1.0))

            raw = SCORE_PER_SECOND * seconds * (SCORE_OPTIMAL_MULTIPLIER if in_zone else 1.0)
            self._accrue_score(raw * boosts.productivity_multiplier)
            self.score_tracker.record_time(dt, in_zone, state.stats.streak * 1000)

            self._detect_threshold_events(now)
            self._detect_milestones(now, workday_duration)
            self._track_achievements(now)
            game_over = self._check_game_end(now, workday_duration)

        self._tick_number += 1
        stats = state.stats
        update = GameLoopUpdate(
            state=state.get_state(),
            caffeine_change=stats.current_caffeine_level - caffeine_before,
            health_change=stats.current_health_level - health_before,
            score_change=stats.score - score_before,
            active_drinks=tuple(effects.active_drinks),
            crashing_drinks=tuple(effects.crashing_drinks),
            events=self._take_events(),
            workday_event=self._running_event_id(),
            active_powerups=tuple(p.definition.id for p in self.powerup_manager.get_active_powerups()),
        )
        self._notify(update)

        if game_over:
            self.stop()
        return update

    def _update_workday_events(self, now: float) -> None:
        for notice in self.event_scheduler.update(now):
            event = notice.event
            if notice.transition == EventTransition.WARNING:
                seconds = math.ceil(event.warning_time / 1000)
                self._queue_event(
                    GameEventType.WORKDAY_EVENT,
                    f"{event.name} starting in {seconds} seconds!",
                    EventSeverity.WARNING,
                    now,
                )
            elif notice.transition == EventTransition.STARTED:
                self._queue_event(
                    GameEventType.WORKDAY_EVENT,
                    f"{event.name}: {event.description}",
                    EventSeverity.WARNING,
                    now,
                )
            else:
                self.score_tracker.record_event_completed()
                self._queue_event(
                    GameEventType.WORKDAY_EVENT, f"Survived {event.name}!", EventSeverity.SUCCESS, now
                )
        self.state_manager.set_optimal_zone_shift(
            self.event_scheduler.get_modifiers().optimal_zone_shift
        )

    def _update_powerups(self, now: float) -> None:
        for notice in self.powerup_manager.update(now):
            if notice.transition == PowerUpTransition.EXPIRED:
                message = f"{notice.powerup.name} wore off"
            else:
                message = f"{notice.powerup.name} is ready"
            self._queue_event(GameEventType.POWER_UP, message, EventSeverity.INFO, now)

    def _running_event_id(self) -> str | None:
        if not self.event_scheduler.is_event_running():
            return None
        return self.event_scheduler.get_active_event().definition.id

    def _accrue_score(self, raw: float) -> None:
        """Carry fractional raw score between ticks so nothing is lost to flooring."""
        self._pending_score += raw
        gained = self.difficulty_manager.calculate_score(self._pending_score)
        if gained > 0:
            self._pending_score -= gained / self.difficulty_manager.config.score_multiplier
            self.state_manager.add_score(gained)

    def _detect_threshold_events(self, now: float) -> None:
        caffeine = self.state_manager.stats.current_caffeine_level
        health = self.state_manager.stats.current_health_level

        for threshold, falling, event_type, message in CAFFEINE_THRESHOLDS:
            if _crossed(self._last_caffeine, caffeine, threshold, falling):
                self._queue_event(event_type, message, self._severity(event_type), now)
        for threshold, falling, event_type, message in HEALTH_THRESHOLDS:
            if _crossed(self._last_health, health, threshold, falling):
                self._queue_event(event_type, message, self._severity(event_type), now)

        self._last_caffeine = caffeine
        self._last_health = health

    @staticmethod
    def _severity(event_type: GameEventType) -> EventSeverity:
        if event_type == GameEventType.CRITICAL:
            return EventSeverity.DANGER
        return EventSeverity.WARNING

    def _detect_milestones(self, now: float, workday_duration: float) -> None:
        for milestone in self.score_tracker.check_milestones(self.state_manager.stats.score):
            self._queue_event(
                GameEventType.MILESTONE, f"Reached {milestone:,} points!", EventSeverity.SUCCESS, now
            )

        if workday_duration <= 0:
            return
        progress = now / workday_duration
        for fraction in TIME_MILESTONES:
            if progress >= fraction and fraction not in self._time_milestones:
                self._time_milestones.add(fraction)
                self._queue_event(
                    GameEventType.MILESTONE,
                    f"{fraction:.0%} of the workday complete",
                    EventSeverity.INFO,
                    now,
                )

    def _track_achievements(self, now: float) -> None:
        tracker = self.achievement_tracker
        if tracker is None:
            return

        stats = self.state_manager.stats
        with self._collect_unlocks(now):
            tracker.track_score(stats.score)
            tracker.track_survival(now)
            tracker.track_optimal_zone(stats.is_in_optimal_zone, now)

    def _check_game_end(self, now: float, workday_duration: float) -> bool:
        stats = self.state_manager.stats
        if stats.current_health_level <= 0:
            if stats.current_caffeine_level >= CAFFEINE_CRITICAL_HIGH:
                reason, message = EndReason.EXPLOSION, "Game over: caffeine overload!"
            else:
                reason, message = EndReason.PASS_OUT, "Game over: you passed out"
            self.state_manager.end_game(reason)
            self._queue_event(GameEventType.STATE_CHANGE, message, EventSeverity.DANGER, now)
            return True

        if now >= workday_duration:
            self.state_manager.end_game(EndReason.VICTORY)
            self._queue_event(
                GameEventType.STATE_CHANGE, "Workday complete!", EventSeverity.SUCCESS, now
            )
            return True

        return False

    # =========================================================================
    # DRINKS
    # =========================================================================

    def try_consume(self, drink_id: str) -> ConsumptionResult:
        """Consume a drink now, returning the full result."""
        state = self.state_manager
        if state.phase != GamePhase.PLAYING:
            return ConsumptionResult(
                success=False,
                caffeine_boost=0.0,
                message="Game is not running",
                drink_id=drink_id,
            )

        now = state.stats.time_elapsed
        if self.event_scheduler.get_modifiers().drinks_restricted:
            event = self.event_scheduler.get_active_event().definition
            result = ConsumptionResult(
                success=False,
                caffeine_boost=0.0,
                message=f"No drinks allowed during {event.name}",
                drink_id=drink_id,
                error=ConsumptionError.DRINKS_RESTRICTED,
            )
            self.last_consumption = result
            return result

        tolerance = self.drink_manager.calculator.calculate_tolerance(
            self.drink_manager.get_consumption_history(),
            now,
            self.difficulty_manager.get_tolerance_rate(),
        )
        effectiveness = self.difficulty_manager.config.drink_effectiveness_multiplier * tolerance

        result = self.drink_manager.consume_drink(drink_id, now, effectiveness)
        self.last_consumption = result
        if not result.success:
            return result

        state.consume_drink(result.caffeine_boost)
        if self.achievement_tracker is not None:
            with self._collect_unlocks(now):
                self.achievement_tracker.track_drink_consumed(drink_id)
        return result

    def consume_drink(self, drink_id: str) -> bool:
        """False for unknown drinks, cooldowns, meetings, or when no game is running."""
        return self.try_consume(drink_id).success

    # =========================================================================
    # POWER-UPS AND WORKDAY EVENTS
    # =========================================================================

    def try_powerup(self, powerup_id: str) -> ActivationResult:
        """Activate a power-up now and apply its instant boosts."""
        state = self.state_manager
        if state.phase != GamePhase.PLAYING:
            return ActivationResult(success=False, powerup_id=powerup_id, message="Game is not running")

        now = state.stats.time_elapsed
        result = self.powerup_manager.activate(powerup_id, now)
        if not result.success:
            return result

        with state.batch_updates():
            if result.caffeine_boost:
                state.update_caffeine_level(result.caffeine_boost)
            if result.health_boost:
                state.update_health_level(result.health_boost)
        self.score_tracker.record_powerup_used()
        self._queue_event(GameEventType.POWER_UP, result.message, EventSeverity.SUCCESS, now)
        return result

    def use_powerup(self, powerup_id: str) -> bool:
        return self.try_powerup(powerup_id).success

    def trigger_workday_event(self, event_id: str) -> None:
        """
        Start a workday event right away, replacing any pending one.
        Raises InvalidWorkdayEvent for unknown ids.
        """
        now = self.state_manager.stats.time_elapsed
        notice = self.event_scheduler.force_event(event_id, now)
        self.state_manager.set_optimal_zone_shift(notice.event.optimal_zone_shift)
        self._queue_event(
            GameEventType.WORKDAY_EVENT,
            f"{notice.event.name}: {notice.event.description}",
            EventSeverity.WARNING,
            now,
        )

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def set_difficulty(self, difficulty: str) -> None:
        """
        Change tier. Raises InvalidDifficulty for unknown tiers.
        Active effects and cooldowns keep the values they were created with.
        """
        self.difficulty_manager.set_difficulty(difficulty)
        self.state_manager.set_difficulty(difficulty)
        self.event_scheduler.set_difficulty(difficulty)

    # =========================================================================
    # EVENTS
    # =========================================================================

    def _queue_event(
        self,
        event_type: GameEventType,
        message: str,
        severity: EventSeverity,
        timestamp: float | None = None,
    ) -> None:
        if timestamp is None:
            timestamp = self.state_manager.stats.time_elapsed
        self._pending_events.append(GameEvent(event_type, message, severity, timestamp))

    def _take_events(self) -> tuple[GameEvent, ...]:
        events = tuple(self._pending_events)
        self._pending_events.clear()
        return events

    @contextmanager
    def _collect_unlocks(self, now: float) -> Iterator[None]:
        """Queue an achievement event for everything unlocked inside the block."""
        tracker = self.achievement_tracker
        before = {a.id for a in tracker.get_unlocked_achievements()}
        yield
        for achievement in tracker.get_unlocked_achievements():
            if achievement.id not in before:
                self._queue_event(
                    GameEventType.ACHIEVEMENT,
                    f"Achievement unlocked: {achievement.name}",
                    EventSeverity.SUCCESS,
                    now,
                )

    def _emit_idle_update(self) -> None:
        """Publish a zero-change update (pause/resume) so listeners see the transition."""
        self._notify(GameLoopUpdate(
            state=self.state_manager.get_state(),
            caffeine_change=0.0,
            health_change=0.0,
            score_change=0,
            events=self._take_events(),
            workday_event=self._running_event_id(),
            active_powerups=tuple(p.definition.id for p in self.powerup_manager.get_active_powerups()),
        ))

    def _notify(self, update: GameLoopUpdate) -> None:
        for listener in list(self._listeners):
            if listener in self._listeners:
                listener(update)
