"""Timer service: build and adjust TimerState values.

Nothing here mutates; every function returns a new value.
"""
from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional, Tuple

from models import Card, TimerState
from progress import calculate_progress
from timeutil import add_minutes, add_minutes_to_now, current_time, minutes_between, remaining_seconds

# Quick-adjust amounts offered next to a running timer.
QUICK_ADJUST_MINUTES: Tuple[int, ...] = (15, 30, -15, -30)


def create_timer(duration_minutes: int, now: Optional[datetime] = None) -> TimerState:
    """Start a timer now. A negative duration yields an already expired timer."""
    start = now or current_time()
    return TimerState(
        start_time=start,
        end_time=add_minutes_to_now(duration_minutes, start),
        initial_duration_minutes=duration_minutes,
        is_active=True,
    )


def create_timer_with_dates(start: datetime, end: datetime) -> TimerState:
    # end before start is not rejected here; range checks belong to callers
    return TimerState(
        start_time=start,
        end_time=end,
        initial_duration_minutes=minutes_between(start, end),
        is_active=True,
    )


def update_timer_dates(timer: TimerState, start: datetime, end: datetime) -> TimerState:
    return replace(timer, start_time=start, end_time=end,
                   initial_duration_minutes=minutes_between(start, end))


def add_time_to_timer(timer: TimerState, minutes: int) -> TimerState:
    """Move the end by a signed amount; inactive timers come back unchanged."""
    if not timer.is_active or timer.end_time is None:
        return timer
    return replace(
        timer,
        end_time=add_minutes(timer.end_time, minutes),
        initial_duration_minutes=timer.initial_duration_minutes + minutes,
    )


def clear_timer(card: Card) -> Card:
    return replace(card, timer=None, progress_value=0)


def calculate_timer_progress(timer: Optional[TimerState], now: Optional[datetime] = None) -> float:
    if timer is None or not timer.is_active or timer.end_time is None:
        return 0
    remaining = remaining_seconds(timer.end_time, timer.start_time, now)
    return calculate_progress(timer.initial_duration_minutes, remaining)


def with_timer(card: Card, timer: Optional[TimerState], now: Optional[datetime] = None) -> Card:
    """Attach ``timer`` to ``card`` and refresh the cached progress."""
    return replace(card, timer=timer, progress_value=calculate_timer_progress(timer, now))


def update_cards_progress(cards: Iterable[Card], now: Optional[datetime] = None) -> Tuple[Card, ...]:
    """Recompute progress for cards with a running timer; others pass through."""
    current = now or current_time()
    return tuple(
        replace(card, progress_value=calculate_timer_progress(card.timer, current))
        if card.has_active_timer and card.timer.end_time is not None else card
        for card in cards
    )
