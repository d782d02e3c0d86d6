"""
Player-facing game settings, stored as one JSON blob.
"""

import logging
from typing import Any, Literal

from pydantic import ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from stay_caffeinated.persistence.storage import SETTINGS_KEY, CamelModel, StorageManager

logger = logging.getLogger(__name__)


class GameSettings(CamelModel):
    """
    Persisted preferences. Unknown keys written by other front ends are
    kept and round-tripped untouched.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    sound_enabled: bool = True
    music_enabled: bool = True
    sound_volume: int = Field(default=70, ge=0, le=100)
    music_volume: int = Field(default=50, ge=0, le=100)
    notifications_enabled: bool = True
    auto_save_enabled: bool = True
    auto_save_interval: int = Field(default=60, gt=0)  # seconds
    show_tutorial: bool = True
    reduced_motion: bool = False
    color_blind_mode: bool = False
    theme: Literal["light", "dark", "system"] = "system"
    language: Literal["en", "es", "fr", "de", "ja"] = "en"


class SettingsStore:
    """
    Load/save GameSettings with whole-object replace semantics.

    A missing or corrupt blob loads as defaults.
    """

    def __init__(self, storage_manager: StorageManager):
        self.storage_manager = storage_manager

    def load(self) -> GameSettings:
        return self.storage_manager.load(SETTINGS_KEY, GameSettings) or GameSettings()

    def save(self, settings: GameSettings) -> bool:
        return self.storage_manager.save(SETTINGS_KEY, settings)

    def update(self, **changes: Any) -> GameSettings:
        """
        Apply field changes (snake_case or camelCase) and save.
        Invalid changes are rejected and the stored settings returned as-is.
        """
        current = self.load()
        merged = current.model_dump(by_alias=True)
        merged.update({to_camel(name) if name in GameSettings.model_fields else name: value
                       for name, value in changes.items()})
        try:
            updated = GameSettings.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"Rejected settings update: {e.error_count()} validation error(s)")
            return current

        self.save(updated)
        return updated

    def reset(self) -> GameSettings:
        defaults = GameSettings()
        self.save(defaults)
        logger.info("Settings reset to defaults")
        return defaults
