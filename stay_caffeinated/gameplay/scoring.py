"""
Scoring - milestone detection, end-of-game breakdown and rank table.
NO UI DEPENDENCIES.

The running score itself is accrued by the game loop through
DifficultyManager.calculate_score(); this module tracks what the final
breakdown needs and which milestones have already fired.
"""
import math
from dataclasses import dataclass
from typing import List, Set, Tuple

from .constants import EVENT_COMPLETE_BONUS, POWERUP_SCORE_BONUS, SCORE_MILESTONES
from .difficulty import get_difficulty_config

# Final-score bonus rates
TIME_BONUS_PER_SECOND = 10
OPTIMAL_BONUS_PER_SECOND = 25
STREAK_BONUS_PER_SECOND = 50
HEALTH_BONUS_PER_POINT = 1000
VICTORY_MULTIPLIER = 1.5


@dataclass
class ScoreMetrics:
    total_time_alive: float = 0.0  # ms
    time_in_optimal: float = 0.0   # ms
    longest_streak: float = 0.0    # ms
    events_completed: int = 0
    powerups_used: int = 0


@dataclass(frozen=True)
class ScoreBreakdown:
    base_score: float
    time_bonus: int
    optimal_bonus: int
    streak_bonus: int
    health_bonus: int
    event_bonus: int
    powerup_bonus: int
    difficulty_multiplier: float
    total_score: int


@dataclass(frozen=True)
class ScoreRank:
    threshold: int
    rank: str
    color: str
    title: str


# Highest threshold first
SCORE_RANKS: Tuple[ScoreRank, ...] = (
    ScoreRank(100000, "S+", "#FFD700", "Legendary"),
    ScoreRank(75000, "S", "#FFA500", "Master"),
    ScoreRank(50000, "A+", "#FF69B4", "Expert"),
    ScoreRank(35000, "A", "#9370DB", "Advanced"),
    ScoreRank(25000, "B+", "#00CED1", "Skilled"),
    ScoreRank(15000, "B", "#32CD32", "Proficient"),
    ScoreRank(10000, "C+", "#90EE90", "Competent"),
    ScoreRank(5000, "C", "#87CEEB", "Capable"),
    ScoreRank(2500, "D", "#B0C4DE", "Beginner"),
    ScoreRank(0, "F", "#D3D3D3", "Intern"),
)


class ScoreTracker:
    """Per-game score bookkeeping: time metrics and one-shot milestones."""

    def __init__(self, milestones: Tuple[int, ...] = SCORE_MILESTONES):
        self.milestones = tuple(sorted(milestones))
        self.metrics = ScoreMetrics()
        self._reached: Set[int] = set()

    def record_time(self, dt: float, in_optimal_zone: bool, streak_ms: float) -> None:
        self.metrics.total_time_alive += dt
        if in_optimal_zone:
            self.metrics.time_in_optimal += dt
        self.metrics.longest_streak = max(self.metrics.longest_streak, streak_ms)

    def record_event_completed(self) -> None:
        self.metrics.events_completed += 1

    def record_powerup_used(self) -> None:
        self.metrics.powerups_used += 1

    def check_milestones(self, score: int) -> List[int]:
        """Milestones crossed by `score` that have not fired yet this game."""
        crossed = [m for m in self.milestones if score >= m and m not in self._reached]
        self._reached.update(crossed)
        return crossed

    def reset(self) -> None:
        self.metrics = ScoreMetrics()
        self._reached.clear()


def calculate_final_score(
    score: float,
    metrics: ScoreMetrics,
    difficulty: str,
    victory: bool,
    health: float = 0.0
) -> ScoreBreakdown:
    """
    End-of-game breakdown.

    Victory multiplies the base score by 1.5 and adds a health bonus.
    Completed workday events and used power-ups add flat bonuses; the
    subtotal is then scaled by the tier's score multiplier.
    """
    multiplier = get_difficulty_config(difficulty).score_multiplier
    base = score * VICTORY_MULTIPLIER if victory else score
    time_bonus = math.floor(metrics.total_time_alive / 1000) * TIME_BONUS_PER_SECOND
    optimal_bonus = math.floor(metrics.time_in_optimal / 1000) * OPTIMAL_BONUS_PER_SECOND
    streak_bonus = math.floor(metrics.longest_streak / 1000) * STREAK_BONUS_PER_SECOND
    health_bonus = math.floor(health * HEALTH_BONUS_PER_POINT) if victory else 0
    event_bonus = metrics.events_completed * EVENT_COMPLETE_BONUS
    powerup_bonus = metrics.powerups_used * POWERUP_SCORE_BONUS

    subtotal = (
        base + time_bonus + optimal_bonus + streak_bonus + health_bonus
        + event_bonus + powerup_bonus
    )
    return ScoreBreakdown(
        base_score=base,
        time_bonus=time_bonus,
        optimal_bonus=optimal_bonus,
        streak_bonus=streak_bonus,
        health_bonus=health_bonus,
        event_bonus=event_bonus,
        powerup_bonus=powerup_bonus,
        difficulty_multiplier=multiplier,
        total_score=math.floor(subtotal * multiplier),
    )


def get_score_rank(score: float) -> ScoreRank:
    for rank in SCORE_RANKS:
        if score >= rank.threshold:
            return rank
    return SCORE_RANKS[-1]


def format_score(score: float) -> str:
    """1234 -> "1.2K", 2500000 -> "2.50M"."""
    if score >= 1_000_000:
        return f"{score / 1_000_000:.2f}M"
    if score >= 1000:
        return f"{score / 1000:.1f}K"
    return f"{int(score):,}"
