"""Timer core — a pure state machine over round/rest interval runs.

Every transition is a total function returning a new state.  No I/O, no
clocks: timestamps are supplied by the caller in monotonic milliseconds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Union

logger = logging.getLogger(__name__)

DEFAULT_PREPARATION_DURATION = 10_000
DEFAULT_ROUND_DURATION = 180_000
DEFAULT_REST_DURATION = 60_000
DEFAULT_ALARM_THRESHOLD = 30_000


class RunStatus(Enum):
    """Run status exposed to renderers and the cue engine."""

    STOPPED = "stopped"
    STARTED = "started"
    PAUSED = "paused"


def _check_duration(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


@dataclass(frozen=True)
class TimerConfig:
    """Phase durations in milliseconds.

    ``alarm_threshold`` is measured back from the end of a round or rest
    phase.  Values are validated on construction so a negative or
    non-finite duration never reaches the state machine.
    """

    preparation_duration: float = DEFAULT_PREPARATION_DURATION
    round_duration: float = DEFAULT_ROUND_DURATION
    rest_duration: float = DEFAULT_REST_DURATION
    alarm_threshold: float = DEFAULT_ALARM_THRESHOLD

    def __post_init__(self) -> None:
        for name in ("preparation_duration", "round_duration", "rest_duration", "alarm_threshold"):
            _check_duration(name, getattr(self, name))
        if self.alarm_threshold > min(self.round_duration, self.rest_duration):
            logger.debug(
                "alarm_threshold %s exceeds the shorter phase; alarm may never fire there",
                self.alarm_threshold,
            )

    @property
    def cycle_duration(self) -> float:
        """One round followed by one rest."""
        return self.round_duration + self.rest_duration


@dataclass(frozen=True)
class Stopped:
    """No run in progress."""

    config: TimerConfig = field(default_factory=TimerConfig)

    @property
    def status(self) -> RunStatus:
        return RunStatus.STOPPED

    @property
    def elapsed(self) -> None:
        return None


@dataclass(frozen=True)
class Running:
    """A run in progress, either counting or paused.

    ``elapsed`` only accumulates while ``paused`` is false.
    """

    config: TimerConfig
    elapsed: float
    last_tick_at: float
    paused: bool = False

    @property
    def status(self) -> RunStatus:
        return RunStatus.PAUSED if self.paused else RunStatus.STARTED


TimerState = Union[Stopped, Running]


# -- events ------------------------------------------------------------------


@dataclass(frozen=True)
class Start:
    now: float


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Tick:
    now: float


@dataclass(frozen=True)
class UpdateConfig:
    config: TimerConfig


Event = Union[Start, Pause, Reset, Tick, UpdateConfig]


# -- transitions -------------------------------------------------------------


def is_started(state: TimerState) -> bool:
    """Return True when *state* is running and not paused."""
    return isinstance(state, Running) and not state.paused


def _clamp(now: float, last_tick_at: float) -> float:
    # Timestamps that run backwards would subtract elapsed time.
    if now < last_tick_at:
        logger.warning("non-monotonic timestamp %s < %s; clamping to zero delta", now, last_tick_at)
        return last_tick_at
    return now


def start(state: TimerState, now: float) -> TimerState:
    """Begin a run from Stopped, or resume a paused one at *now*."""
    if isinstance(state, Stopped):
        return Running(config=state.config, elapsed=0, last_tick_at=now)
    if not state.paused:
        return state
    return Running(
        config=state.config,
        elapsed=state.elapsed,
        last_tick_at=_clamp(now, state.last_tick_at),
    )


def pause(state: TimerState) -> TimerState:
    """Freeze elapsed time.  No-op unless started."""
    if not is_started(state):
        return state
    return Running(
        config=state.config,
        elapsed=state.elapsed,
        last_tick_at=state.last_tick_at,
        paused=True,
    )


def tick(state: TimerState, now: float) -> TimerState:
    """Fold the time since the last tick into ``elapsed``."""
    if not is_started(state):
        return state
    now = _clamp(now, state.last_tick_at)
    return Running(
        config=state.config,
        elapsed=state.elapsed + (now - state.last_tick_at),
        last_tick_at=now,
    )


def reset(state: TimerState) -> TimerState:
    return Stopped(config=state.config)


def update_config(state: TimerState, config: TimerConfig) -> TimerState:
    """Replace the configuration, discarding any run in progress."""
    return Stopped(config=config)


def fold(state: TimerState, event: Event) -> TimerState:
    """Apply a single *event* to *state*."""
    if isinstance(event, Tick):
        return tick(state, event.now)
    if isinstance(event, Start):
        return start(state, event.now)
    if isinstance(event, Pause):
        return pause(state)
    if isinstance(event, Reset):
        return reset(state)
    if isinstance(event, UpdateConfig):
        return update_config(state, event.config)
    raise TypeError(f"not a timer event: {type(event).__name__}")
