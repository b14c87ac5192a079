"""Settings store: persists timer configuration as JSON.

Only the configuration is stored; a run in progress never survives the
process.
"""

from __future__ import annotations

import dataclasses
import fcntl
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from roundbell.core.cues import StartCuePolicy
from roundbell.core.timer import TimerConfig

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "roundbell"
_SETTINGS_FILE = "settings.json"

ADJUST_STEP = 10_000  # ms per editor step
MIN_DURATION = 10_000

DURATION_FIELDS = ("preparation_duration", "round_duration", "rest_duration", "alarm_threshold")


def adjust_duration(duration: float, steps: int) -> float:
    """Move *duration* by *steps* 10-second increments, never below 10 s."""
    return max(MIN_DURATION, duration + steps * ADJUST_STEP)


@dataclass(frozen=True)
class Settings:
    config: TimerConfig = dataclasses.field(default_factory=TimerConfig)
    start_cue: StartCuePolicy = StartCuePolicy.ON_START

    def to_dict(self) -> dict:
        data = dataclasses.asdict(self.config)
        data["start_cue"] = self.start_cue.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Settings:
        """Build settings from *data*, ignoring unknown keys.

        Raises ``ValueError`` (or ``TypeError``) for invalid values.
        """
        durations = {name: data[name] for name in DURATION_FIELDS if name in data}
        start_cue = StartCuePolicy(data.get("start_cue", StartCuePolicy.ON_START.value))
        return cls(config=TimerConfig(**durations), start_cue=start_cue)


class SettingsStore:
    """Reads and writes ``<config_dir>/settings.json`` under an advisory lock."""

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir: Path = config_dir if config_dir is not None else _DEFAULT_CONFIG_DIR

    @property
    def path(self) -> Path:
        return self._config_dir / _SETTINGS_FILE

    def load(self) -> Settings:
        """Return stored settings, or defaults when nothing is stored yet."""
        if not self.path.exists():
            return Settings()

        with open(self.path) as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a JSON object")
        return Settings.from_dict(data)

    def save(self, settings: Settings) -> None:
        self._config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            json.dump(settings.to_dict(), f, indent=2)
        logger.debug("saved settings to %s", self.path)

    def update(self, **changes: object) -> Settings:
        """Load, apply *changes* (duration fields or ``start_cue``), and save."""
        current = self.load()
        start_cue = changes.pop("start_cue", current.start_cue)
        unknown = set(changes) - set(DURATION_FIELDS)
        if unknown:
            raise ValueError(f"unknown settings: {', '.join(sorted(unknown))}")
        updated = Settings(
            config=dataclasses.replace(current.config, **changes),
            start_cue=StartCuePolicy(start_cue),
        )
        self.save(updated)
        return updated
