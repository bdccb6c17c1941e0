"""Tests for the global settings store."""

import pytest

from vision_loop.core.exceptions import SettingsError
from vision_loop.core.models import AppSettings, DurationUnit, PlaybackMode, PlaybackOrientation
from vision_loop.core.settings_manager import SettingsManager


@pytest.fixture
def settings(data_dir):
    return SettingsManager(user_data_dir=str(data_dir))


def test_defaults(settings):
    assert settings.get_app_settings() == AppSettings()
    assert settings.get_app_settings().max_playback_duration is None


def test_values_persist(settings, data_dir):
    settings.set_playback_mode("random")
    settings.set_playback_orientation(PlaybackOrientation.PORTRAIT)
    settings.set_slide_duration(7)
    settings.set_max_playback_duration(600)
    settings.set_playback_duration_unit("minutes")

    reopened = SettingsManager(user_data_dir=str(data_dir)).get_app_settings()
    assert reopened.playback_mode is PlaybackMode.RANDOM
    assert reopened.playback_orientation is PlaybackOrientation.PORTRAIT
    assert reopened.slide_duration_seconds == 7
    assert reopened.max_playback_duration == 600
    assert reopened.playback_duration_unit is DurationUnit.MINUTES


@pytest.mark.parametrize("value", [0, -5, None])
def test_non_positive_limit_means_unlimited(settings, value):
    settings.set_max_playback_duration(value)
    assert settings.get_max_playback_duration() == -1


def test_slide_duration_must_be_positive(settings):
    with pytest.raises(SettingsError):
        settings.set_slide_duration(0)


def test_invalid_mode_rejected(settings):
    with pytest.raises(SettingsError):
        settings.set_playback_mode("shuffle")
    assert settings.get_playback_mode() is PlaybackMode.SEQUENTIAL


def test_unknown_stored_value_falls_back(settings):
    settings.put("playback_mode", "sideways")
    assert settings.get_playback_mode() is PlaybackMode.SEQUENTIAL


def test_change_event(settings):
    changes = []
    settings.bind(on_setting_changed=lambda instance, key, value: changes.append((key, value)))
    settings.set_playback_mode(PlaybackMode.REVERSE)
    assert changes == [("playback_mode", "reverse")]


def test_save_app_settings_round_trip(settings):
    wanted = AppSettings(
        playback_orientation=PlaybackOrientation.PORTRAIT,
        slide_duration_seconds=12,
        playback_mode=PlaybackMode.REVERSE,
        max_playback_duration_seconds=3600,
        slide_duration_unit=DurationUnit.SECONDS,
        playback_duration_unit=DurationUnit.HOURS,
    )
    settings.save_app_settings(wanted)
    assert settings.get_app_settings() == wanted


def test_corrupt_file_is_set_aside(data_dir):
    (data_dir / "vision_loop_settings.json").write_text("{not json", encoding="utf-8")
    settings = SettingsManager(user_data_dir=str(data_dir))
    assert settings.get_app_settings() == AppSettings()
    assert (data_dir / "vision_loop_settings.json.corrupt").exists()
