"""
Headless simulation runner.

Plays one full workday with a ManualScheduler and a simple autopilot that
drinks whatever recommend_drink() suggests when caffeine gets low. Useful
for balancing difficulty tiers without a UI.

Usage:
    python -m stay_caffeinated.sim_runner --difficulty senior
"""

import argparse
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone

from stay_caffeinated.config import Settings, get_settings
from stay_caffeinated.engine.loop import GameEvent, GameLoopConfig, GameLoopEngine, GameLoopUpdate
from stay_caffeinated.engine.scheduler import ManualScheduler
from stay_caffeinated.gameplay.achievements import AchievementTracker
from stay_caffeinated.gameplay.difficulty import DIFFICULTY_ORDER
from stay_caffeinated.gameplay.drinks import recommend_drink
from stay_caffeinated.gameplay.scoring import (
    ScoreBreakdown, calculate_final_score, format_score, get_score_rank,
)
from stay_caffeinated.gameplay.state import GameConfig, GamePhase, GameStateManager
from stay_caffeinated.persistence.storage import HighScoreEntry, JsonFileStorage, StorageManager

logger = logging.getLogger(__name__)

# Autopilot drinks once caffeine falls this far into the optimal band
AUTOPILOT_MARGIN = 5.0
# and reaches for vitamins below this much health
AUTOPILOT_HEALTH_FLOOR = 50.0


@dataclass
class SimSummary:
    difficulty: str
    phase: GamePhase
    end_reason: str | None
    score: int
    breakdown: ScoreBreakdown
    rank: str
    drinks_consumed: int
    events_completed: int
    powerups_used: int
    time_elapsed: float
    time_of_day: str
    ticks: int
    events: list[GameEvent] = field(default_factory=list)
    achievements_unlocked: list[str] = field(default_factory=list)


class Autopilot:
    """Tops caffeine up toward the middle of the optimal band and takes vitamins when worn down."""

    def __init__(self, engine: GameLoopEngine) -> None:
        self.engine = engine

    def __call__(self, update: GameLoopUpdate) -> None:
        if update.state.phase != GamePhase.PLAYING:
            return

        if update.state.stats.current_health_level < AUTOPILOT_HEALTH_FLOOR:
            self.engine.use_powerup("vitamins")

        optimal = self.engine.difficulty_manager.get_optimal_caffeine_range()
        caffeine = update.state.stats.current_caffeine_level
        if caffeine > optimal.min + AUTOPILOT_MARGIN:
            return

        target = (optimal.min + optimal.max) / 2
        drink_id = recommend_drink(
            caffeine, target, update.state.stats.time_elapsed, self.engine.drink_manager
        )
        if drink_id is not None and drink_id != "water":
            self.engine.consume_drink(drink_id)


def run_headless_sim(
    difficulty: str | None = None,
    *,
    settings: Settings | None = None,
    storage_manager: StorageManager | None = None,
    autopilot: bool = True,
    max_ticks: int | None = None,
    seed: int | None = None,
) -> SimSummary:
    """
    Run one game to completion (or max_ticks) and summarize it.
    `seed` overrides settings.random_seed for the workday events.
    """
    settings = settings or get_settings()
    difficulty = difficulty or settings.default_difficulty
    seed = seed if seed is not None else settings.random_seed

    config = GameLoopConfig.from_settings(settings)
    scheduler = ManualScheduler(config.frame_interval)
    tracker = AchievementTracker(storage_manager) if storage_manager is not None else None
    engine = GameLoopEngine(
        GameStateManager(GameConfig(difficulty=difficulty)),
        config,
        scheduler=scheduler,
        achievement_tracker=tracker,
        rng=random.Random(seed),
        workday_events=settings.workday_events,
        workday_real_minutes=settings.workday_real_minutes,
    )

    events: list[GameEvent] = []
    engine.on_update(lambda update: events.extend(update.events))
    if autopilot:
        engine.on_update(Autopilot(engine))

    if max_ticks is None:
        # Every tick is one frame interval; leave room for the baseline frame
        max_ticks = int(engine.get_workday_duration() / config.frame_interval) + 10

    engine.start()
    frames = 0
    while engine.is_running and frames < max_ticks:
        scheduler.step()
        frames += 1
    engine.stop()

    state = engine.get_state()
    victory = state.phase == GamePhase.VICTORY
    breakdown = calculate_final_score(
        state.stats.score,
        engine.score_tracker.metrics,
        difficulty,
        victory,
        state.stats.current_health_level,
    )
    summary = SimSummary(
        difficulty=difficulty,
        phase=state.phase,
        end_reason=state.end_reason.value if state.end_reason else None,
        score=state.stats.score,
        breakdown=breakdown,
        rank=get_score_rank(breakdown.total_score).rank,
        drinks_consumed=state.stats.drinks_consumed,
        events_completed=engine.score_tracker.metrics.events_completed,
        powerups_used=engine.score_tracker.metrics.powerups_used,
        time_elapsed=state.stats.time_elapsed,
        time_of_day=state.time_of_day,
        ticks=engine.tick_number,
        events=events,
        achievements_unlocked=[a.id for a in tracker.get_unlocked_achievements()] if tracker else [],
    )

    if storage_manager is not None:
        _record_result(storage_manager, summary)
    return summary


def _record_result(storage_manager: StorageManager, summary: SimSummary) -> None:
    stats = storage_manager.get_statistics()
    storage_manager.update_statistics(
        games_played=stats.games_played + 1,
        total_play_time=stats.total_play_time + summary.time_elapsed,
        high_score=max(stats.high_score, summary.breakdown.total_score),
        perfect_days=stats.perfect_days + (1 if summary.phase == GamePhase.VICTORY else 0),
        crash_count=stats.crash_count + (1 if summary.end_reason == "passOut" else 0),
        explosion_count=stats.explosion_count + (1 if summary.end_reason == "explosion" else 0),
    )
    storage_manager.add_high_score(HighScoreEntry(
        score=summary.breakdown.total_score,
        difficulty=summary.difficulty,
        date=datetime.now(timezone.utc).isoformat(),
        duration=summary.time_elapsed,
        drinks_consumed=summary.drinks_consumed,
    ))


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Run a headless Stay Caffeinated workday with an autopilot player",
    )
    parser.add_argument(
        "--difficulty",
        choices=DIFFICULTY_ORDER,
        default=settings.default_difficulty,
        help=f"Difficulty tier (default: {settings.default_difficulty})",
    )
    parser.add_argument(
        "--storage-dir",
        default=settings.storage_dir,
        help=f"Directory for achievements and statistics (default: {settings.storage_dir})",
    )
    parser.add_argument(
        "--no-storage",
        action="store_true",
        help="Do not read or write any persisted data",
    )
    parser.add_argument(
        "--no-autopilot",
        action="store_true",
        help="Never drink; watch the caffeine drain",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=settings.random_seed,
        help="Seed for the random workday events (default: unseeded)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Logging level (default: {settings.log_level})",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    storage_manager = None
    if not args.no_storage:
        storage_manager = StorageManager(JsonFileStorage(args.storage_dir))

    summary = run_headless_sim(
        args.difficulty,
        settings=settings,
        storage_manager=storage_manager,
        autopilot=not args.no_autopilot,
        seed=args.seed,
    )

    print(f"Difficulty:   {summary.difficulty}")
    print(f"Outcome:      {summary.phase.value} ({summary.end_reason})")
    print(f"Clock:        {summary.time_of_day} after {summary.time_elapsed / 1000:.1f}s")
    print(f"Drinks:       {summary.drinks_consumed}")
    print(f"Events:       {summary.events_completed} survived, {summary.powerups_used} power-ups used")
    print(f"Score:        {format_score(summary.score)}")
    print(f"Final score:  {format_score(summary.breakdown.total_score)} (rank {summary.rank})")
    if summary.achievements_unlocked:
        print(f"Achievements: {', '.join(summary.achievements_unlocked)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
