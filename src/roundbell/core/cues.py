"""Cue engine. Decides which audio cue a fold should request.

The engine compares the snapshot before a fold with the snapshot after it.
It performs no I/O and keeps no state of its own; the caller supplies the
previous snapshot and acts on the returned cue.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from roundbell.core.phase import Phase, Projection, project
from roundbell.core.timer import RunStatus, TimerState


class Cue(Enum):
    """A request to play a sound, identified by purpose."""

    START = "start"
    PHASE_CHANGE = "phase_change"
    ALARM = "alarm"

    @property
    def sound(self) -> str:
        return _SOUNDS[self]

    @property
    def restarts(self) -> bool:
        """Whether the player must stop and replay from zero if still playing."""
        return self is not Cue.ALARM


_SOUNDS = {
    Cue.START: "bell",
    Cue.PHASE_CHANGE: "bell",
    Cue.ALARM: "knocks",
}


class StartCuePolicy(Enum):
    """When the start cue fires on a Stopped -> started transition."""

    ON_START = "on-start"  # always
    ON_ROUND = "on-round"  # only when the run opens in a round (no preparation)


@dataclass(frozen=True)
class Snapshot:
    state: TimerState
    projection: Projection

    @classmethod
    def of(cls, state: TimerState) -> Snapshot:
        return cls(state, project(state))

    @property
    def status(self) -> RunStatus:
        return self.state.status


def select_cue(
    previous: Snapshot,
    current: Snapshot,
    policy: StartCuePolicy = StartCuePolicy.ON_START,
) -> Cue | None:
    """Return the cue to request for the move from *previous* to *current*.

    Checked in priority order: start, phase change, alarm.  At most one cue
    is returned per fold.
    """
    started = current.status is RunStatus.STARTED

    if previous.status is RunStatus.STOPPED and started:
        if policy is StartCuePolicy.ON_START or current.projection.phase is Phase.ROUND:
            return Cue.START
        return None

    if not (started and previous.status is RunStatus.STARTED):
        return None

    if previous.projection.phase is not current.projection.phase:
        return Cue.PHASE_CHANGE

    threshold = current.state.config.alarm_threshold
    if previous.projection.time_remaining > threshold >= current.projection.time_remaining:
        return Cue.ALARM
    return None
