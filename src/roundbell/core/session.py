"""Session driver — owns the timer state and wires it to its collaborators.

Every event, whether a user action or a scheduled tick, is folded through
one queue.  After each fold the renderer gets a fresh :class:`TimerView`
and the player gets whatever cue the engine selected.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Protocol

from roundbell.core.cues import Cue, Snapshot, StartCuePolicy, select_cue
from roundbell.core.phase import Phase, Projection, format_time, project
from roundbell.core.timer import (
    Event,
    Pause,
    Reset,
    RunStatus,
    Start,
    Stopped,
    Tick,
    TimerConfig,
    TimerState,
    UpdateConfig,
    fold,
)

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.1  # seconds


def _now_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class TimerView:
    """What a renderer needs to draw the timer."""

    phase: Phase
    time_remaining: str
    round_index: int
    status: RunStatus


class Renderer(Protocol):
    def render(self, view: TimerView) -> None: ...


class Player(Protocol):
    def play(self, cue: Cue) -> None: ...


def make_view(state: TimerState) -> TimerView:
    projection = project(state)
    return TimerView(
        phase=projection.phase,
        time_remaining=format_time(projection.time_remaining),
        round_index=projection.round_index,
        status=state.status,
    )


class RoundTimer:
    """Drives a single interval-timer run.

    Collaborators are optional so the timer can be exercised headless.
    Dispatch is safe to call from several threads and from inside a
    collaborator callback: events queue up and are folded in arrival order.
    """

    def __init__(
        self,
        config: TimerConfig | None = None,
        *,
        renderer: Renderer | None = None,
        player: Player | None = None,
        start_cue: StartCuePolicy = StartCuePolicy.ON_START,
    ) -> None:
        self._state: TimerState = Stopped(config=config if config is not None else TimerConfig())
        self._renderer = renderer
        self._player = player
        self._start_cue = start_cue
        self._queue: deque[Event] = deque()
        self._lock = threading.Lock()
        self._draining = False

    # -- public API ----------------------------------------------------------

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def config(self) -> TimerConfig:
        return self._state.config

    @property
    def projection(self) -> Projection:
        return project(self._state)

    @property
    def view(self) -> TimerView:
        return make_view(self._state)

    def start(self) -> None:
        """Start a run, or resume a paused one."""
        self.dispatch(Start(_now_ms()))

    def pause(self) -> None:
        self.dispatch(Pause())

    def reset(self) -> None:
        self.dispatch(Reset())

    def tick(self) -> None:
        self.dispatch(Tick(_now_ms()))

    def update_config(
        self, round_duration: float, rest_duration: float, alarm_threshold: float
    ) -> None:
        """Apply new durations (milliseconds).  Any run in progress is discarded.

        Raises ``ValueError``/``TypeError`` for malformed durations, leaving
        the current state untouched.
        """
        config = dataclasses.replace(
            self._state.config,
            round_duration=round_duration,
            rest_duration=rest_duration,
            alarm_threshold=alarm_threshold,
        )
        self.dispatch(UpdateConfig(config))

    def dispatch(self, event: Event) -> None:
        """Queue *event* and fold everything pending, in order."""
        with self._lock:
            self._queue.append(event)
            if self._draining:
                return
            self._draining = True
        try:
            while True:
                with self._lock:
                    if not self._queue:
                        self._draining = False
                        return
                    event = self._queue.popleft()
                self._apply(event)
        except BaseException:
            with self._lock:
                self._draining = False
            raise

    # -- private helpers -----------------------------------------------------

    def _apply(self, event: Event) -> None:
        previous = Snapshot.of(self._state)
        self._state = fold(self._state, event)
        current = Snapshot.of(self._state)

        if previous.status is not current.status:
            logger.debug(
                "%s: %s -> %s", type(event).__name__, previous.status.value, current.status.value
            )

        if self._renderer is not None:
            self._renderer.render(make_view(self._state))

        cue = select_cue(previous, current, self._start_cue)
        if cue is not None:
            logger.debug("cue %s at %s", cue.value, format_time(current.projection.time_remaining))
            if self._player is not None:
                self._player.play(cue)


class Ticker:
    """Calls *callback* every *interval* seconds until stopped.

    Deadlines are computed from the start time rather than from the end of
    the previous call, so jitter does not accumulate; slots missed while a
    callback overran are skipped.
    """

    def __init__(self, callback: Callable[[], None], interval: float = TICK_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._callback = callback
        self._interval = interval
        self._stopped = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def stop(self) -> None:
        """Stop after the current callback (if any) returns."""
        self._stopped.set()

    def run(self) -> None:
        """Block, ticking, until :meth:`stop` is called."""
        origin = time.monotonic()
        slot = 0
        while not self._stopped.is_set():
            self._callback()
            if self._stopped.is_set():
                break
            elapsed_slots = int((time.monotonic() - origin) / self._interval)
            slot = max(slot + 1, elapsed_slots + 1)
            delay = origin + slot * self._interval - time.monotonic()
            if delay > 0:
                self._stopped.wait(delay)
