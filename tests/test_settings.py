"""Tests for the JSON settings store."""

import json
from pathlib import Path

import pytest

from roundbell.core.cues import StartCuePolicy
from roundbell.core.timer import TimerConfig
from roundbell.settings import Settings, SettingsStore, adjust_duration


def _read_settings(config_dir: Path) -> dict:
    """Read and return the settings.json content as a dict."""
    return json.loads((config_dir / "settings.json").read_text())


# ---------------------------------------------------------------------------
# adjust_duration()
# ---------------------------------------------------------------------------


class TestAdjustDuration:
    """The editor moves durations in 10 s steps with a 10 s floor."""

    def test_step_up(self) -> None:
        assert adjust_duration(180_000, 1) == 190_000

    def test_step_down(self) -> None:
        assert adjust_duration(180_000, -3) == 150_000

    def test_floor_is_ten_seconds(self) -> None:
        assert adjust_duration(20_000, -5) == 10_000

    def test_below_floor_is_lifted(self) -> None:
        assert adjust_duration(0, 0) == 10_000


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_round_trip_dict(self) -> None:
        settings = Settings(TimerConfig(round_duration=90_000), StartCuePolicy.ON_ROUND)
        assert Settings.from_dict(settings.to_dict()) == settings

    def test_unknown_keys_are_ignored(self) -> None:
        assert Settings.from_dict({"volume": 11}) == Settings()

    def test_invalid_duration_raises(self) -> None:
        with pytest.raises(ValueError):
            Settings.from_dict({"round_duration": -5})

    def test_invalid_policy_raises(self) -> None:
        with pytest.raises(ValueError):
            Settings.from_dict({"start_cue": "sometimes"})


# ---------------------------------------------------------------------------
# SettingsStore
# ---------------------------------------------------------------------------


class TestSettingsStore:
    """SettingsStore persists configuration to <config_dir>/settings.json."""

    def test_load_defaults_when_missing(self, tmp_path: Path) -> None:
        assert SettingsStore(config_dir=tmp_path).load() == Settings()

    def test_save_writes_json(self, tmp_path: Path) -> None:
        SettingsStore(config_dir=tmp_path).save(Settings())
        assert _read_settings(tmp_path) == {
            "preparation_duration": 10_000,
            "round_duration": 180_000,
            "rest_duration": 60_000,
            "alarm_threshold": 30_000,
            "start_cue": "on-start",
        }

    def test_save_creates_config_dir(self, tmp_path: Path) -> None:
        config_dir = tmp_path / "nested" / "roundbell"
        SettingsStore(config_dir=config_dir).save(Settings())
        assert (config_dir / "settings.json").exists()

    def test_save_then_load(self, tmp_path: Path) -> None:
        settings = Settings(
            TimerConfig(
                preparation_duration=0,
                round_duration=120_000,
                rest_duration=30_000,
                alarm_threshold=10_000,
            ),
            StartCuePolicy.ON_ROUND,
        )
        SettingsStore(config_dir=tmp_path).save(settings)
        assert SettingsStore(config_dir=tmp_path).load() == settings

    def test_partial_file_fills_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "settings.json").write_text(json.dumps({"rest_duration": 45_000}))
        settings = SettingsStore(config_dir=tmp_path).load()
        assert settings.config == TimerConfig(rest_duration=45_000)
        assert settings.start_cue == StartCuePolicy.ON_START

    def test_non_object_file_raises(self, tmp_path: Path) -> None:
        (tmp_path / "settings.json").write_text("[1, 2, 3]")
        with pytest.raises(ValueError):
            SettingsStore(config_dir=tmp_path).load()

    def test_update_changes_only_given_fields(self, tmp_path: Path) -> None:
        store = SettingsStore(config_dir=tmp_path)
        updated = store.update(round_duration=90_000, start_cue="on-round")
        assert updated.config == TimerConfig(round_duration=90_000)
        assert updated.start_cue == StartCuePolicy.ON_ROUND
        assert store.load() == updated

    def test_update_rejects_unknown_field(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            SettingsStore(config_dir=tmp_path).update(volume=3)

    def test_update_rejects_invalid_value_without_writing(self, tmp_path: Path) -> None:
        store = SettingsStore(config_dir=tmp_path)
        with pytest.raises(ValueError):
            store.update(alarm_threshold=-1)
        assert not store.path.exists()
