"""Command-line interface for the station board.

One-shot commands load the saved board, apply one change and write it back.
``watch`` keeps the board live: it ticks every second, redraws, and rings
the terminal bell when a timer runs out.
"""
from __future__ import annotations
import asyncio
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from alarm import Alarm
from board import BoardView
from progress import read_timer
from storage import FileBlobStore, Storage
from store import Store
from timers import QUICK_ADJUST_MINUTES
from timeutil import (
    adjust_end_for_midnight, current_time, format_duration_minutes, instant_to_time_string,
    parse_duration_minutes, parse_instant, time_string_to_instant,
)

# --- terminal control helpers ---
# ESC[3J (scrollback), ESC[H (home), ESC[2J (screen), ESC[H (home)
# Order (3J first) improves reliability in some terminals.
def _clear_screen() -> None:
    print("\033[3J\033[H\033[2J\033[H", end="", flush=True)


def _truthy_env(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off", ""}


def _enter_alt_screen() -> None:
    print("\033[?1049h", end="", flush=True)


def _leave_alt_screen() -> None:
    print("\033[?1049l", end="", flush=True)


class Duration(click.ParamType):
    """Minutes given as 90, 25m, 1h30m or PT1H30M."""
    name = 'duration'

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        minutes = parse_duration_minutes(value)
        if minutes is None:
            self.fail(f"{value!r} is not a duration (try 25m or 1h30m)", param, ctx)
        return minutes


def _parse_moment(value: str, base: Optional[datetime] = None) -> datetime:
    """HH:MM (on the date of ``base`` or today) or a full ISO-8601 instant."""
    if ':' in value and len(value.strip()) <= 5:
        return time_string_to_instant(value, base=base)
    return parse_instant(value)


ADD_HELP = ('Add MINUTES (negative to remove) to a running timer.\n\n'
            'Usual amounts: ' + ', '.join(f'{m:+d}' for m in QUICK_ADJUST_MINUTES) + '.')


def _open(ctx: click.Context, **kwargs) -> Store:
    return Store.open(ctx.obj['storage'], **kwargs)


def _not_found(section_id: int, card_id: Optional[int] = None) -> click.ClickException:
    if card_id is None:
        return click.ClickException(f'Section id {section_id} not found.')
    return click.ClickException(f'Card {card_id} not found in section {section_id}.')


@click.group()
@click.option('--data-dir', type=click.Path(file_okay=False, path_type=Path),
              envvar='STATIONS_DATA_DIR', default=None,
              help='Directory the board is saved in (default ~/.stations).')
@click.pass_context
def cli(ctx: click.Context, data_dir: Optional[Path]) -> None:
    """Countdown timers for stations grouped in sections."""
    ctx.ensure_object(dict)
    ctx.obj['storage'] = Storage(FileBlobStore(data_dir))


# -------------------- views --------------------
@cli.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Print the board once."""
    store = _open(ctx)
    muted = ctx.obj['storage'].load_muted()
    BoardView(store.board, current_time(), muted).display()


@cli.command('list')
@click.pass_context
def list_cards(ctx: click.Context) -> None:
    """List every station with its section and remaining time."""
    store = _open(ctx)
    now = current_time()
    for ref in store.all_cards():
        reading = read_timer(ref.card.timer, now)
        remaining = reading.remaining_text if ref.card.has_active_timer else '-'
        click.echo(f"{ref.section_id}/{ref.card.id}\t{ref.section_name}\t{ref.card.name}\t{remaining}")


async def _watch(store: Store, alarm: Alarm) -> None:
    store.start()
    try:
        while True:
            _clear_screen()
            print("Stations:")
            BoardView(store.board, store.clock(), alarm.muted).display()
            await asyncio.sleep(store.tasks.tick_seconds)
    finally:
        store.stop()


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Live board; rings the bell when a timer expires. Ctrl-C to quit.

    Uses the terminal's alternate screen unless STATIONS_ALT_SCREEN=0.
    """
    alarm = Alarm(ctx.obj['storage'])
    store = _open(ctx, on_expired=alarm)
    alt_screen = _truthy_env(os.getenv("STATIONS_ALT_SCREEN"), True)
    if alt_screen:
        _enter_alt_screen()
    try:
        asyncio.run(_watch(store, alarm))
    except KeyboardInterrupt:
        pass
    finally:
        if alt_screen:
            _leave_alt_screen()
    click.echo("Goodbye.")


# -------------------- sections --------------------
@cli.group()
def section() -> None:
    """Add, rename or delete sections."""


@section.command('add')
@click.argument('name', required=False)
@click.pass_context
def section_add(ctx: click.Context, name: Optional[str]) -> None:
    store = _open(ctx)
    new = store.add_section()
    if name is not None:
        store.rename_section(new.id, name)
    store.close()
    click.echo(f'Section {new.id} added.')


@section.command('rename')
@click.argument('section_id', type=int)
@click.argument('name')
@click.pass_context
def section_rename(ctx: click.Context, section_id: int, name: str) -> None:
    store = _open(ctx)
    if not store.rename_section(section_id, name):
        raise _not_found(section_id)
    store.close()


@section.command('delete')
@click.argument('section_id', type=int)
@click.pass_context
def section_delete(ctx: click.Context, section_id: int) -> None:
    """Delete a section together with its stations."""
    store = _open(ctx)
    if not store.delete_section(section_id):
        raise _not_found(section_id)
    store.close()
    click.echo(f'Section {section_id} removed.')


# -------------------- cards --------------------
@cli.group()
def card() -> None:
    """Add, rename or delete stations."""


@card.command('add')
@click.argument('section_id', type=int)
@click.argument('name', required=False)
@click.pass_context
def card_add(ctx: click.Context, section_id: int, name: Optional[str]) -> None:
    store = _open(ctx)
    new = store.add_card(section_id)
    if new is None:
        raise _not_found(section_id)
    if name is not None:
        store.rename_card(section_id, new.id, name)
    store.close()
    click.echo(f'Card {new.id} added to section {section_id}.')


@card.command('rename')
@click.argument('section_id', type=int)
@click.argument('card_id', type=int)
@click.argument('name')
@click.pass_context
def card_rename(ctx: click.Context, section_id: int, card_id: int, name: str) -> None:
    store = _open(ctx)
    if not store.rename_card(section_id, card_id, name):
        raise _not_found(section_id, card_id)
    store.close()


@card.command('delete')
@click.argument('section_id', type=int)
@click.argument('card_id', type=int)
@click.pass_context
def card_delete(ctx: click.Context, section_id: int, card_id: int) -> None:
    store = _open(ctx)
    if not store.delete_card(section_id, card_id):
        raise _not_found(section_id, card_id)
    store.close()
    click.echo(f'Card {card_id} removed.')


# -------------------- timers --------------------
@cli.command()
@click.argument('section_id', type=int)
@click.argument('card_id', type=int)
@click.argument('duration', type=Duration())
@click.pass_context
def start(ctx: click.Context, section_id: int, card_id: int, duration: int) -> None:
    """Start a countdown of DURATION (90, 25m, 1h30m) now."""
    if duration <= 0:
        raise click.BadParameter('duration must be positive', param_hint='DURATION')
    store = _open(ctx)
    if not store.start_timer(section_id, card_id, duration):
        raise _not_found(section_id, card_id)
    store.close()
    reading = store.read(section_id, card_id)
    click.echo(f'Timer started for {format_duration_minutes(duration)}: {reading.remaining_text} left.')


@cli.command('range')
@click.argument('section_id', type=int)
@click.argument('card_id', type=int)
@click.argument('start_at')
@click.argument('end_at')
@click.pass_context
def set_range(ctx: click.Context, section_id: int, card_id: int, start_at: str, end_at: str) -> None:
    """Run a timer from START_AT to END_AT (HH:MM or ISO-8601).

    A running timer is rescheduled, keeping its dates for HH:MM input. An
    HH:MM end earlier than the start means the next day.
    """
    store = _open(ctx)
    existing = store.find_card(section_id, card_id)
    if existing is None:
        raise _not_found(section_id, card_id)
    running = existing.timer if existing.has_active_timer else None
    try:
        start_time = _parse_moment(start_at, base=running.start_time if running else None)
        if ':' in end_at and len(end_at.strip()) <= 5:
            end_time = adjust_end_for_midnight(start_time, end_at)
        else:
            end_time = parse_instant(end_at)
    except ValueError as ex:
        raise click.BadParameter(str(ex)) from ex
    if end_time < start_time:
        raise click.BadParameter('end must not be before start', param_hint='END_AT')
    if running:
        store.update_timer_range(section_id, card_id, start_time, end_time)
    else:
        store.start_timer_with_range(section_id, card_id, start_time, end_time)
    store.close()
    click.echo(f'Timer set: {instant_to_time_string(start_time)} - {instant_to_time_string(end_time)}.')


@cli.command('add', help=ADD_HELP, context_settings={'ignore_unknown_options': True})
@click.argument('section_id', type=int)
@click.argument('card_id', type=int)
@click.argument('minutes', type=int)
@click.pass_context
def add_time(ctx: click.Context, section_id: int, card_id: int, minutes: int) -> None:
    store = _open(ctx)
    if store.find_card(section_id, card_id) is None:
        raise _not_found(section_id, card_id)
    if not store.add_time_to_timer(section_id, card_id, minutes):
        raise click.ClickException(f'Card {card_id} has no running timer.')
    store.close()
    sign = '+' if minutes >= 0 else ''
    click.echo(f'Added {sign}{format_duration_minutes(minutes)}; '
               f'timer now at {store.read(section_id, card_id).remaining_text}.')


@cli.command()
@click.argument('section_id', type=int)
@click.argument('card_id', type=int)
@click.pass_context
def clear(ctx: click.Context, section_id: int, card_id: int) -> None:
    """Stop and remove a station's timer."""
    store = _open(ctx)
    if not store.clear_timer(section_id, card_id):
        raise _not_found(section_id, card_id)
    store.close()


@cli.command()
@click.argument('section_a', type=int)
@click.argument('card_a', type=int)
@click.argument('section_b', type=int)
@click.argument('card_b', type=int)
@click.pass_context
def swap(ctx: click.Context, section_a: int, card_a: int, section_b: int, card_b: int) -> None:
    """Exchange the timers of two stations."""
    store = _open(ctx)
    if not store.swap_timers(section_a, card_a, section_b, card_b):
        raise click.ClickException('Nothing swapped: check both stations exist and differ.')
    store.close()
    click.echo(f'Swapped timers of {section_a}/{card_a} and {section_b}/{card_b}.')


# -------------------- alarm --------------------
@cli.command()
@click.pass_context
def mute(ctx: click.Context) -> None:
    """Silence the expiry bell."""
    Alarm(ctx.obj['storage']).mute()


@cli.command()
@click.pass_context
def unmute(ctx: click.Context) -> None:
    """Re-enable the expiry bell."""
    Alarm(ctx.obj['storage']).unmute()
