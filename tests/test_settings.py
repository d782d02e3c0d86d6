"""
Tests for SettingsStore.
"""
import json

from stay_caffeinated.persistence.settings import GameSettings, SettingsStore
from stay_caffeinated.persistence.storage import SETTINGS_KEY


class TestSettingsStore:
    """Tests for loading, updating and resetting settings."""

    def test_defaults(self, storage_manager):
        """Nothing stored loads defaults."""
        settings = SettingsStore(storage_manager).load()
        assert settings == GameSettings()
        assert settings.sound_volume == 70
        assert settings.theme == "system"

    def test_update_snake_and_camel(self, storage_manager):
        """Both spellings of a field are accepted."""
        store = SettingsStore(storage_manager)
        store.update(sound_volume=30)
        store.update(musicVolume=10)
        settings = store.load()
        assert settings.sound_volume == 30
        assert settings.music_volume == 10

    def test_invalid_update_rejected(self, storage_manager):
        """Out-of-range values leave settings unchanged."""
        store = SettingsStore(storage_manager)
        store.update(sound_volume=30)
        result = store.update(sound_volume=150, theme="neon")
        assert result.sound_volume == 30
        assert store.load().theme == "system"

    def test_corrupt_blob_loads_defaults(self, memory_storage, storage_manager):
        """A corrupt settings blob is replaced by defaults."""
        memory_storage.data[SETTINGS_KEY] = "]]"
        assert SettingsStore(storage_manager).load() == GameSettings()

    def test_unknown_keys_round_trip(self, memory_storage, storage_manager):
        """Keys written by other front ends survive an update."""
        memory_storage.data[SETTINGS_KEY] = json.dumps({"soundVolume": 40, "hapticsEnabled": True})
        store = SettingsStore(storage_manager)
        store.update(reduced_motion=True)
        stored = json.loads(memory_storage.data[SETTINGS_KEY])
        assert stored["hapticsEnabled"] is True
        assert stored["soundVolume"] == 40
        assert stored["reducedMotion"] is True

    def test_reset(self, storage_manager):
        """Reset stores and returns defaults."""
        store = SettingsStore(storage_manager)
        store.update(language="ja")
        assert store.reset() == GameSettings()
        assert store.load().language == "en"
