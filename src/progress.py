"""Progress, urgency tier, and countdown text derived from a timer.

The bar is pinned full while more than an hour remains and drains linearly
over the final hour, whatever the configured duration. Once the timer runs
out the value keeps growing past 100 (one extra percent per 36 seconds of
overtime), capped at 200.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from models import TimerState
from timeutil import remaining_seconds

ONE_HOUR_SECONDS = 3600
MAX_PROGRESS = 200.0


class Variant(str, Enum):
    DEFAULT = "default"
    WARNING = "warning"
    ORANGE = "orange"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Reading:
    progress: float
    variant: Variant
    remaining_seconds: int
    remaining_text: str
    expired: bool


IDLE_READING = Reading(0, Variant.DEFAULT, 0, '00:00', False)


def calculate_progress(initial_minutes: int, remaining: int) -> float:
    if initial_minutes <= 0:
        return 0
    if remaining < 0:
        overtime = abs(remaining)
        return min(MAX_PROGRESS, 100 + (overtime / ONE_HOUR_SECONDS) * 100)
    if remaining > ONE_HOUR_SECONDS:
        return 100
    progress = (remaining / ONE_HOUR_SECONDS) * 100
    return max(0, min(100, progress))


def calculate_progress_variant(remaining: int) -> Variant:
    """Urgency tier; thresholds are checked most specific first."""
    # exactly 00:00 reads as idle, not urgent
    if remaining == 0:
        return Variant.DEFAULT
    remaining_minutes = remaining // 60
    if is_expired(remaining) or remaining_minutes <= 10:
        return Variant.DESTRUCTIVE
    if remaining_minutes <= 20:
        return Variant.ORANGE
    if remaining_minutes <= 30:
        return Variant.WARNING
    return Variant.DEFAULT


def format_remaining_time(seconds: int) -> str:
    """"MM:SS" under an hour, "H:MM:SS" above; overtime gets a "+" prefix."""
    expired = seconds < 0
    abs_seconds = abs(int(seconds))
    if abs_seconds == 0:
        return '00:00'
    hours, rest = divmod(abs_seconds, ONE_HOUR_SECONDS)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        formatted = f"{hours}:{minutes:02d}:{secs:02d}"
    else:
        formatted = f"{minutes:02d}:{secs:02d}"
    return f"+{formatted}" if expired else formatted


def is_expired(remaining: int) -> bool:
    return remaining < 0


def read_timer(timer: Optional[TimerState], now: Optional[datetime] = None) -> Reading:
    """Bundle every derived value of a timer for display."""
    if timer is None or not timer.is_active or timer.end_time is None:
        return IDLE_READING
    remaining = remaining_seconds(timer.end_time, timer.start_time, now)
    return Reading(
        progress=calculate_progress(timer.initial_duration_minutes, remaining),
        variant=calculate_progress_variant(remaining),
        remaining_seconds=remaining,
        remaining_text=format_remaining_time(remaining),
        expired=is_expired(remaining),
    )
