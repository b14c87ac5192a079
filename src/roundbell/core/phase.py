"""Phase projection: where in the preparation/round/rest sequence a run is."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from roundbell.core.timer import TimerConfig, TimerState


class Phase(Enum):
    PREPARATION = "preparation"
    ROUND = "round"
    REST = "rest"


@dataclass(frozen=True)
class Projection:
    """Derived view of a state; recomputed on demand, never stored."""

    phase: Phase
    time_remaining: float
    round_index: int


def project_elapsed(elapsed: float, config: TimerConfig) -> Projection:
    """Project *elapsed* active milliseconds onto the phase sequence.

    Round index is 0 during preparation and 1-based afterwards; it only
    advances once a full round + rest cycle has elapsed.
    """
    if elapsed < config.preparation_duration:
        return Projection(Phase.PREPARATION, config.preparation_duration - elapsed, 0)

    cycle = config.cycle_duration
    if cycle <= 0:
        return Projection(Phase.ROUND, 0, 1)

    completed, into_cycle = divmod(elapsed - config.preparation_duration, cycle)
    if into_cycle < config.round_duration:
        return Projection(Phase.ROUND, config.round_duration - into_cycle, int(completed) + 1)
    return Projection(Phase.REST, cycle - into_cycle, int(completed) + 1)


def project(state: TimerState) -> Projection:
    """Return the projection for *state* (a stopped timer has zero elapsed)."""
    elapsed = state.elapsed if state.elapsed is not None else 0
    return project_elapsed(elapsed, state.config)


# -- display -----------------------------------------------------------------

_TIME_RE = re.compile(r"^(\d+):([0-5]\d):(\d)$")


def format_time(ms: float) -> str:
    """Format *ms* as ``M:SS:T`` rounded to the nearest tenth of a second."""
    tenths = int((max(ms, 0) + 50) // 100)
    minutes, tenths = divmod(tenths, 600)
    seconds, tenths = divmod(tenths, 10)
    return f"{minutes}:{seconds:02d}:{tenths}"


def parse_time(text: str) -> int:
    """Parse an ``M:SS:T`` string back into milliseconds."""
    match = _TIME_RE.match(text.strip())
    if match is None:
        raise ValueError(f"time must look like M:SS:T, got {text!r}")
    minutes, seconds, tenths = (int(part) for part in match.groups())
    return ((minutes * 60 + seconds) * 10 + tenths) * 100
