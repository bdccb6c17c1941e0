# vision_loop/core/settings_manager.py

import logging
import os
from kivy.event import EventDispatcher
from kivy.storage.jsonstore import JsonStore

from vision_loop.constants import (
    CONFIG_KEY_MAX_PLAYBACK_DURATION,
    CONFIG_KEY_ORIENTATION,
    CONFIG_KEY_PLAYBACK_DURATION_UNIT,
    CONFIG_KEY_PLAYBACK_MODE,
    CONFIG_KEY_SLIDE_DURATION,
    CONFIG_KEY_SLIDE_DURATION_UNIT,
    DEFAULT_SLIDE_DURATION_SECONDS,
    MIN_SLIDE_DURATION_SECONDS,
    SETTINGS_FILE,
    UNLIMITED_PLAYBACK_DURATION,
)
from vision_loop.core.exceptions import SettingsError
from vision_loop.core.models import AppSettings, DurationUnit, PlaybackMode, PlaybackOrientation
from vision_loop.utils.file_utils import get_user_data_dir_for_app

log = logging.getLogger(__name__)

def _enum_value(enum_cls, value) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        raise SettingsError(f"Invalid {enum_cls.__name__} value: {value!r}") from None

class SettingsManager(EventDispatcher):
    """Manages loading, saving, and accessing the global playback settings."""
    __events__ = ('on_setting_changed',)

    def __init__(self, user_data_dir=None):
        super().__init__()
        self.user_data_dir = user_data_dir or get_user_data_dir_for_app()
        os.makedirs(self.user_data_dir, exist_ok=True)
        self.settings_path = os.path.join(self.user_data_dir, SETTINGS_FILE)
        self.store = self._open_store()
        self._defaults = {
            CONFIG_KEY_ORIENTATION: PlaybackOrientation.LANDSCAPE.value,
            CONFIG_KEY_SLIDE_DURATION: DEFAULT_SLIDE_DURATION_SECONDS,
            CONFIG_KEY_PLAYBACK_MODE: PlaybackMode.SEQUENTIAL.value,
            CONFIG_KEY_MAX_PLAYBACK_DURATION: UNLIMITED_PLAYBACK_DURATION,
            CONFIG_KEY_SLIDE_DURATION_UNIT: DurationUnit.SECONDS.value,
            CONFIG_KEY_PLAYBACK_DURATION_UNIT: DurationUnit.SECONDS.value,
        }
        self._load_settings()

    def _open_store(self):
        try:
            return JsonStore(self.settings_path)
        except ValueError as e:
            corrupt_path = f"{self.settings_path}.corrupt"
            log.error(f"Settings file is corrupt ({e}), moving it to {corrupt_path}")
            os.replace(self.settings_path, corrupt_path)
            return JsonStore(self.settings_path)

    def _load_settings(self):
        """Ensures all default settings exist in the JSON store."""
        is_new_file = not os.path.exists(self.settings_path)
        for key, default_value in self._defaults.items():
            if not self.store.exists(key):
                self.store.put(key, value=default_value)
        if is_new_file:
            log.info(f"Created new settings file at: {self.settings_path}")
        else:
            log.info(f"Loaded settings from: {self.settings_path}")

    def get(self, key, default=None):
        """Gets a value from the settings store."""
        if self.store.exists(key):
            return self.store.get(key)["value"]
        if key in self._defaults:
            log.warning(f"Key '{key}' not in store, returning default value.")
            return self._defaults[key]
        log.error(f"Key '{key}' not found in store or defaults.")
        return default

    def put(self, key, value):
        """Puts a value into the settings store and dispatches an event."""
        self.store.put(key, value=value)
        log.debug(f"Setting '{key}' changed to '{value}'")
        self.dispatch('on_setting_changed', key, value)

    def get_playback_orientation(self) -> PlaybackOrientation:
        return PlaybackOrientation.from_value(self.get(CONFIG_KEY_ORIENTATION))

    def set_playback_orientation(self, value):
        self.put(CONFIG_KEY_ORIENTATION, _enum_value(PlaybackOrientation, value))

    def get_slide_duration(self) -> int:
        try:
            return max(MIN_SLIDE_DURATION_SECONDS, int(self.get(CONFIG_KEY_SLIDE_DURATION)))
        except (TypeError, ValueError):
            return DEFAULT_SLIDE_DURATION_SECONDS

    def set_slide_duration(self, seconds: int):
        seconds = int(seconds)
        if seconds < MIN_SLIDE_DURATION_SECONDS:
            raise SettingsError(f"Slide duration must be at least {MIN_SLIDE_DURATION_SECONDS}s, got {seconds}")
        self.put(CONFIG_KEY_SLIDE_DURATION, seconds)

    def get_playback_mode(self) -> PlaybackMode:
        return PlaybackMode.from_value(self.get(CONFIG_KEY_PLAYBACK_MODE))

    def set_playback_mode(self, value):
        self.put(CONFIG_KEY_PLAYBACK_MODE, _enum_value(PlaybackMode, value))

    def get_max_playback_duration(self) -> int:
        """Seconds, or -1 when playback is not limited."""
        try:
            value = int(self.get(CONFIG_KEY_MAX_PLAYBACK_DURATION))
        except (TypeError, ValueError):
            return UNLIMITED_PLAYBACK_DURATION
        return value if value > 0 else UNLIMITED_PLAYBACK_DURATION

    def set_max_playback_duration(self, seconds):
        seconds = UNLIMITED_PLAYBACK_DURATION if seconds is None else int(seconds)
        self.put(CONFIG_KEY_MAX_PLAYBACK_DURATION, seconds if seconds > 0 else UNLIMITED_PLAYBACK_DURATION)

    def get_slide_duration_unit(self) -> DurationUnit:
        return DurationUnit.from_value(self.get(CONFIG_KEY_SLIDE_DURATION_UNIT))

    def set_slide_duration_unit(self, unit):
        self.put(CONFIG_KEY_SLIDE_DURATION_UNIT, _enum_value(DurationUnit, unit))

    def get_playback_duration_unit(self) -> DurationUnit:
        return DurationUnit.from_value(self.get(CONFIG_KEY_PLAYBACK_DURATION_UNIT))

    def set_playback_duration_unit(self, unit):
        self.put(CONFIG_KEY_PLAYBACK_DURATION_UNIT, _enum_value(DurationUnit, unit))

    def get_app_settings(self) -> AppSettings:
        return AppSettings(
            playback_orientation=self.get_playback_orientation(),
            slide_duration_seconds=self.get_slide_duration(),
            playback_mode=self.get_playback_mode(),
            max_playback_duration_seconds=self.get_max_playback_duration(),
            slide_duration_unit=self.get_slide_duration_unit(),
            playback_duration_unit=self.get_playback_duration_unit(),
        )

    def save_app_settings(self, settings: AppSettings):
        self.set_playback_orientation(settings.playback_orientation)
        self.set_slide_duration(settings.slide_duration_seconds)
        self.set_playback_mode(settings.playback_mode)
        self.set_max_playback_duration(settings.max_playback_duration_seconds)
        self.set_slide_duration_unit(settings.slide_duration_unit)
        self.set_playback_duration_unit(settings.playback_duration_unit)
        log.info(f"Saved settings: {settings.to_dict()}")

    def on_setting_changed(self, key, value):
        pass
