"""Tests for instant arithmetic, parsing and time-of-day helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import T0
from timeutil import (
    add_minutes,
    add_minutes_to_now,
    adjust_end_for_midnight,
    format_duration_minutes,
    format_instant,
    instant_to_time_string,
    minutes_between,
    normalize_time,
    parse_duration_minutes,
    parse_instant,
    remaining_seconds,
    resolve_tz,
    seconds_between,
    time_string_to_instant,
    to_total_minutes,
)


class TestArithmetic:
    def test_add_minutes_signed(self):
        assert add_minutes(T0, 15) == T0 + timedelta(minutes=15)
        assert add_minutes(T0, -30) == T0 - timedelta(minutes=30)

    def test_add_minutes_to_now(self):
        assert add_minutes_to_now(45, now=T0) == T0 + timedelta(minutes=45)

    def test_minutes_between_truncates_toward_zero(self):
        assert minutes_between(T0, T0 + timedelta(seconds=90)) == 1
        assert minutes_between(T0, T0 - timedelta(seconds=90)) == -1
        assert minutes_between(T0, T0 + timedelta(minutes=89, seconds=59)) == 89

    def test_seconds_between_truncates(self):
        assert seconds_between(T0, T0 + timedelta(milliseconds=1500)) == 1
        assert seconds_between(T0, T0 - timedelta(milliseconds=500)) == 0


class TestRemainingSeconds:
    def test_no_end_is_zero(self):
        assert remaining_seconds(None, now=T0) == 0

    def test_counts_down_to_end(self):
        end = T0 + timedelta(minutes=10)
        assert remaining_seconds(end, T0, now=T0 + timedelta(minutes=4)) == 360

    def test_negative_once_passed(self):
        end = T0 + timedelta(minutes=1)
        assert remaining_seconds(end, T0, now=T0 + timedelta(minutes=2)) == -60

    def test_future_start_reports_full_span(self):
        start = T0 + timedelta(hours=1)
        end = T0 + timedelta(hours=3)
        assert remaining_seconds(end, start, now=T0) == 7200

    def test_without_start_uses_end_only(self):
        end = T0 + timedelta(hours=3)
        assert remaining_seconds(end, now=T0) == 3 * 3600


class TestInstants:
    def test_format_is_utc_iso(self):
        rome = timezone(timedelta(hours=1))
        assert format_instant(datetime(2026, 2, 11, 10, 0, tzinfo=rome)) == "2026-02-11T09:00:00+00:00"

    def test_parse_z_suffix(self):
        assert parse_instant("2026-02-11T09:00:00Z") == T0

    def test_parse_naive_uses_display_zone(self):
        parsed = parse_instant("2026-02-11T09:00:00")
        assert parsed == T0
        assert parsed.utcoffset() == timedelta(0)

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_instant("tomorrow-ish")


class TestTimeOfDay:
    def test_time_string_of_none(self):
        assert instant_to_time_string(None) == "00:00"

    def test_time_string(self):
        assert instant_to_time_string(T0 + timedelta(minutes=75)) == "10:15"

    def test_keeps_base_date_and_zeroes_seconds(self):
        base = datetime(2026, 2, 11, 9, 15, 42, tzinfo=timezone.utc)
        assert time_string_to_instant("14:30", base=base) == datetime(2026, 2, 11, 14, 30, tzinfo=timezone.utc)

    def test_defaults_to_today(self):
        assert time_string_to_instant("07:05", now=T0) == datetime(2026, 2, 11, 7, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize("text", ["25:00", "12:60", "abc", "", "1230"])
    def test_invalid_time_string(self, text):
        with pytest.raises(ValueError):
            time_string_to_instant(text, now=T0)

    def test_end_after_midnight_moves_to_next_day(self):
        start = datetime(2026, 2, 11, 23, 30, tzinfo=timezone.utc)
        assert adjust_end_for_midnight(start, "01:00") == datetime(2026, 2, 12, 1, 0, tzinfo=timezone.utc)

    def test_end_same_day(self):
        start = datetime(2026, 2, 11, 22, 0, tzinfo=timezone.utc)
        assert adjust_end_for_midnight(start, "23:45") == datetime(2026, 2, 11, 23, 45, tzinfo=timezone.utc)


class TestNormalizeTime:
    def test_carry_positive(self):
        assert normalize_time(1, 75) == (2, 15)

    def test_carry_negative(self):
        assert normalize_time(0, -70) == (-2, 50)

    def test_small_values_untouched(self):
        assert normalize_time(1, 30) == (1, 30)
        assert normalize_time(1, -30) == (1, -30)

    def test_total_minutes(self):
        assert to_total_minutes(1, 30) == 90

    def test_format_duration_minutes(self):
        assert format_duration_minutes(45) == "45m"
        assert format_duration_minutes(60) == "1h00m"
        assert format_duration_minutes(90) == "1h30m"
        assert format_duration_minutes(-135) == "-2h15m"
        assert format_duration_minutes(0) == "0m"


class TestParseDuration:
    @pytest.mark.parametrize("text, minutes", [
        ("90", 90),
        ("25m", 25),
        ("1h30m", 90),
        ("2h", 120),
        ("PT1H30M", 90),
        ("PT10M30S", 11),
    ])
    def test_accepted(self, text, minutes):
        assert parse_duration_minutes(text) == minutes

    @pytest.mark.parametrize("text", [None, "", "  ", "abc", "PT", "h"])
    def test_rejected(self, text):
        assert parse_duration_minutes(text) is None


class TestResolveTz:
    def test_utc(self):
        assert resolve_tz("UTC") is timezone.utc

    def test_fixed_offset(self):
        assert resolve_tz("+02:00").utcoffset(None) == timedelta(hours=2)
        assert resolve_tz("-0530").utcoffset(None) == -timedelta(hours=5, minutes=30)

    def test_local_when_unset(self):
        assert resolve_tz(None) is not None

    def test_invalid(self):
        with pytest.raises(ValueError):
            resolve_tz("Not/AZone")
