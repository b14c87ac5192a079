"""CLI entry point for roundbell.

Uses Click to expose the ``roundbell`` command group: ``run`` drives a
timer in the terminal, ``config`` inspects and edits stored settings.
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from typing import Callable, TypeVar

import click

import roundbell
from roundbell.core.cues import Cue, StartCuePolicy
from roundbell.core.phase import Phase, format_time
from roundbell.core.session import RoundTimer, Ticker, TimerView
from roundbell.settings import DURATION_FIELDS, Settings, SettingsStore, adjust_duration

T = TypeVar("T")

_FIELD_NAMES = {
    "prep": "preparation_duration",
    "round": "round_duration",
    "rest": "rest_duration",
    "alarm": "alarm_threshold",
}

_SECONDS = click.FloatRange(min=0)
_POLICY = click.Choice([policy.value for policy in StartCuePolicy])


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting configuration errors to a CLI error.

    On ``ValueError`` or ``TypeError`` the message is printed to stderr and
    the process exits with code 1.
    """
    try:
        return action()
    except (ValueError, TypeError) as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _duration_options(func: Callable) -> Callable:
    for flag, name in reversed(list(_FIELD_NAMES.items())):
        label = name.replace("_", " ").capitalize()
        func = click.option(
            f"--{flag}", name, type=_SECONDS, default=None, help=f"{label} in seconds."
        )(func)
    return click.option(
        "--start-cue", type=_POLICY, default=None, help="When the start bell rings."
    )(func)


def _to_ms(options: dict) -> dict:
    """Convert the non-empty duration options from seconds to milliseconds."""
    return {
        name: value * 1000
        for name, value in options.items()
        if name in DURATION_FIELDS and value is not None
    }


class TerminalRenderer:
    """Redraws a single status line in place."""

    def render(self, view: TimerView) -> None:
        click.echo(
            f"\r{view.phase.value:<11} {view.time_remaining:>8}"
            f"  round {view.round_index}  [{view.status.value}]",
            nl=False,
        )


class TerminalBell:
    """Rings the terminal bell; a bell cannot overlap itself, so restarts are trivial."""

    def play(self, cue: Cue) -> None:
        click.echo("\a", nl=False)


def _rounds_done(timer: RoundTimer, rounds: int | None) -> bool:
    if not rounds:
        return False
    projection = timer.projection
    if projection.round_index > rounds:
        return True
    return projection.round_index == rounds and projection.phase is Phase.REST


@click.group()
@click.version_option(version=roundbell.__version__, prog_name="roundbell")
@click.option("--verbose", "-v", is_flag=True, help="Log state transitions and cues.")
def cli(verbose: bool) -> None:
    """roundbell: an interval timer for rounds and rests."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command()
@_duration_options
@click.option(
    "--rounds", type=click.IntRange(min=1), default=None, help="Stop after this many rounds."
)
@click.option("--quiet", "-q", is_flag=True, help="Do not ring the terminal bell.")
def run(rounds: int | None, quiet: bool, start_cue: str | None, **durations: float | None) -> None:
    """Run the timer until Ctrl-C (or until --rounds are done)."""
    settings = _run(SettingsStore().load)
    timer_config = _run(lambda: dataclasses.replace(settings.config, **_to_ms(durations)))
    policy = StartCuePolicy(start_cue) if start_cue else settings.start_cue

    timer = RoundTimer(
        timer_config,
        renderer=TerminalRenderer(),
        player=None if quiet else TerminalBell(),
        start_cue=policy,
    )

    def on_tick() -> None:
        timer.tick()
        if _rounds_done(timer, rounds):
            ticker.stop()

    ticker = Ticker(on_tick)
    timer.start()
    try:
        ticker.run()
    except KeyboardInterrupt:
        ticker.stop()
        timer.pause()

    view = timer.view
    click.echo()
    click.echo(
        f"Stopped in {view.phase.value}, round {view.round_index}, "
        f"{view.time_remaining} remaining"
    )


@cli.group()
def config() -> None:
    """Show or change stored settings."""


def _show(settings: Settings) -> None:
    for flag, name in _FIELD_NAMES.items():
        click.echo(f"{flag:<6} {format_time(getattr(settings.config, name))}")
    click.echo(f"{'cue':<6} {settings.start_cue.value}")


@config.command("show")
def show() -> None:
    """Print the stored settings."""
    _show(_run(SettingsStore().load))


@config.command("set")
@_duration_options
def set_(start_cue: str | None, **durations: float | None) -> None:
    """Store new durations (in seconds) or start-cue policy."""
    changes: dict = _to_ms(durations)
    if start_cue is not None:
        changes["start_cue"] = start_cue
    if not changes:
        raise click.UsageError("nothing to set")
    _show(_run(lambda: SettingsStore().update(**changes)))


@config.command(context_settings={"ignore_unknown_options": True})
@click.argument("field", type=click.Choice(list(_FIELD_NAMES)))
@click.argument("steps", type=int)
def adjust(field: str, steps: int) -> None:
    """Move FIELD by STEPS 10-second increments (floor 10 s)."""
    store = SettingsStore()
    name = _FIELD_NAMES[field]
    current = _run(store.load)
    value = adjust_duration(getattr(current.config, name), steps)
    _show(_run(lambda: store.update(**{name: value})))
