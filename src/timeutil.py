"""Time helpers: instants, durations, and their display strings.

All instants handled by the board are timezone-aware datetimes. Display and
time-of-day parsing happen in the zone named by STATIONS_TZ (local time when
unset). Functions that depend on the current time take an optional ``now``
so callers and tests can pin the clock.
"""
from __future__ import annotations
import os
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Tuple

from zoneinfo import ZoneInfo

TIME_FORMAT = '%H:%M'
ONE_MINUTE = timedelta(minutes=1)
ONE_SECOND = timedelta(seconds=1)

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")
_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_ISO_DURATION_RE = re.compile(r"^P(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)$", re.IGNORECASE)
_SHORT_DURATION_RE = re.compile(r"^(?:(\d+)h)?\s*(?:(\d+)m?)?$", re.IGNORECASE)


def resolve_tz(name: Optional[str]) -> tzinfo:
    """Resolve a timezone name: None/"local", "UTC", an IANA name or +HH:MM.

    Raises ValueError for identifiers that cannot be resolved.
    """
    s = (name or '').strip()
    low = s.lower()
    if not s or low in {'local', 'system'}:
        return datetime.now().astimezone().tzinfo or timezone.utc
    if low in {'utc', 'z', 'gmt'}:
        return timezone.utc
    m = _OFFSET_RE.match(s)
    if m:
        sign_s, hh_s, mm_s = m.groups()
        hh, mm = int(hh_s), int(mm_s)
        if hh > 23 or mm > 59:
            raise ValueError(f"Invalid timezone offset: {s!r}")
        sign = 1 if sign_s == '+' else -1
        return timezone(timedelta(minutes=sign * (hh * 60 + mm)))
    try:
        return ZoneInfo(s)
    except Exception as ex:
        raise ValueError(f"Invalid timezone identifier: {s!r}") from ex


def display_tz() -> tzinfo:
    return resolve_tz(os.environ.get('STATIONS_TZ'))


def current_time() -> datetime:
    return datetime.now(tz=display_tz())


def to_local(instant: datetime) -> datetime:
    return instant.astimezone(display_tz())


# -------------------- arithmetic --------------------
def add_minutes(instant: datetime, minutes: int) -> datetime:
    """Shift an instant by a signed number of minutes."""
    return instant + timedelta(minutes=minutes)


def add_minutes_to_now(minutes: int, now: Optional[datetime] = None) -> datetime:
    return add_minutes(now or current_time(), minutes)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    return int((end - start) / ONE_MINUTE)


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, truncated toward zero."""
    return int((end - start) / ONE_SECOND)


def remaining_seconds(end: Optional[datetime], start: Optional[datetime] = None,
                      now: Optional[datetime] = None) -> int:
    """Seconds left until ``end`` (negative once it has passed).

    A timer whose ``start`` is still in the future has not begun yet, so the
    full span is reported instead of the distance to ``end``.
    """
    if end is None:
        return 0
    current = now or current_time()
    if start is not None and current < start:
        return seconds_between(start, end)
    return seconds_between(current, end)


# -------------------- (de)serialization --------------------
def format_instant(instant: datetime) -> str:
    """ISO-8601 in UTC, the form instants are persisted in."""
    return instant.astimezone(timezone.utc).isoformat()


def parse_instant(text: str) -> datetime:
    """Parse ISO-8601; naive values are taken to be in the display zone."""
    raw = text.strip()
    if raw.endswith(('Z', 'z')):
        raw = raw[:-1] + '+00:00'
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=display_tz())
    return parsed


# -------------------- time-of-day --------------------
def instant_to_time_string(instant: Optional[datetime]) -> str:
    if instant is None:
        return '00:00'
    return to_local(instant).strftime(TIME_FORMAT)


def time_string_to_instant(time_string: str, base: Optional[datetime] = None,
                           now: Optional[datetime] = None) -> datetime:
    """Turn "HH:MM" into an instant on the date of ``base`` (or today).

    Seconds are zeroed. Raises ValueError when the string is not a time.
    """
    m = _TIME_RE.match(time_string or '')
    if not m:
        raise ValueError(f"Invalid time: {time_string!r} (expected HH:MM)")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time: {time_string!r}")
    day = to_local(base) if base is not None else to_local(now or current_time())
    return day.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def adjust_end_for_midnight(start: datetime, end_time_string: str) -> datetime:
    """End instant for "HH:MM" on the start's date, or the next day if it
    would otherwise fall before the start time-of-day (e.g. 23:30 -> 01:00).
    """
    end = time_string_to_instant(end_time_string, base=start)
    if end.strftime(TIME_FORMAT) < to_local(start).strftime(TIME_FORMAT):
        end = end + timedelta(days=1)
    return end


def normalize_time(hours: int, minutes: int) -> Tuple[int, int]:
    """Carry minutes of magnitude >= 60 into hours."""
    if abs(minutes) >= 60:
        carry, minutes = divmod(minutes, 60)
        hours += carry
    return hours, minutes


def to_total_minutes(hours: int, minutes: int) -> int:
    return hours * 60 + minutes


def format_duration_minutes(minutes: int) -> str:
    """Signed minutes as "45m" or "1h30m"; negative amounts get a "-" prefix."""
    sign = '-' if minutes < 0 else ''
    hours, rest = normalize_time(0, abs(minutes))
    if hours:
        return f"{sign}{hours}h{rest:02d}m"
    return f"{sign}{rest}m"


def parse_duration_minutes(text: Optional[str]) -> Optional[int]:
    """Parse "90", "25m", "1h30m", "2h" or ISO "PT1H30M" into minutes.

    Returns None when the text is not a duration.
    """
    if not text:
        return None
    s = str(text).strip()
    if not s:
        return None
    m = _ISO_DURATION_RE.match(s)
    if m and any(m.groups()):
        total = int(m.group(1) or 0) * 60 + int(m.group(2) or 0)
        if int(m.group(3) or 0) >= 30:
            total += 1
        return total
    m = _SHORT_DURATION_RE.match(s)
    if m and (m.group(1) or m.group(2)):
        return to_total_minutes(int(m.group(1) or 0), int(m.group(2) or 0))
    return None
