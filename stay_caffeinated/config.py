"""
Configuration management for Stay Caffeinated.
Uses pydantic-settings for environment variable parsing.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STAY_CAFFEINATED_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Game loop
    target_fps: int = Field(
        default=60,
        gt=0,
        description="Target simulation updates per second"
    )
    max_delta_time_ms: float = Field(
        default=250.0,
        gt=0,
        description="Cap on a single frame's elapsed time (avoids jumps after suspension)"
    )
    fixed_time_step: bool = Field(
        default=True,
        description="Integrate in fixed 1/target_fps steps instead of raw frame deltas"
    )

    # Workday
    workday_real_minutes: float = Field(
        default=3.0,
        gt=0,
        description="Real-time minutes a junior workday lasts; other tiers scale from it"
    )
    default_difficulty: str = Field(
        default="junior",
        description="Difficulty tier selected for new games"
    )
    workday_events: bool = Field(
        default=True,
        description="Interrupt the workday with random meetings, reviews, bugs and breaks"
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for workday events; unset means a different day every run"
    )

    # Persistence
    storage_dir: str = Field(
        default=".stay_caffeinated",
        description="Directory used by the JSON file storage backend"
    )

    # Logging
    log_level: str = Field(default="INFO")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    """
    return Settings()
