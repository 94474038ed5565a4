"""Unit tests for calendar-aligned challenge windows (all UTC)."""

from datetime import datetime, timedelta, timezone

import pytest

from studyhub.challenges.windows import (
    add_months,
    day_window,
    ensure_utc,
    hot_window,
    month_window,
    seconds_until_midnight,
    week_window,
    window_for,
)


def _dt(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestDayWindow:
    def test_midnight_to_midnight(self):
        w = day_window(_dt(2026, 3, 10, 15, 30))
        assert w.start == _dt(2026, 3, 10)
        assert w.end == _dt(2026, 3, 11)

    def test_exactly_midnight_belongs_to_new_day(self):
        w = day_window(_dt(2026, 3, 10))
        assert w.start == _dt(2026, 3, 10)

    def test_half_open(self):
        w = day_window(_dt(2026, 3, 10, 12))
        assert w.contains(w.start)
        assert not w.contains(w.end)
        assert w.contains(w.end - timedelta(microseconds=1))

    def test_non_utc_input_is_normalized(self):
        plus_five = timezone(timedelta(hours=5))
        # 02:00 at +05:00 is 21:00 UTC the previous day
        w = day_window(datetime(2026, 3, 10, 2, 0, tzinfo=plus_five))
        assert w.start == _dt(2026, 3, 9)


class TestWeekAndMonth:
    def test_week_is_seven_days_from_today(self):
        w = week_window(_dt(2026, 3, 10, 9))
        assert w.start == _dt(2026, 3, 10)
        assert w.end == _dt(2026, 3, 17)

    def test_month_is_one_calendar_month(self):
        w = month_window(_dt(2026, 3, 10, 9))
        assert w.start == _dt(2026, 3, 10)
        assert w.end == _dt(2026, 4, 10)

    def test_month_clamps_short_months(self):
        assert add_months(_dt(2026, 1, 31), 1) == _dt(2026, 2, 28)
        assert add_months(_dt(2028, 1, 31), 1) == _dt(2028, 2, 29)

    def test_month_rolls_over_year(self):
        assert add_months(_dt(2026, 12, 15), 1) == _dt(2027, 1, 15)


class TestHotWindow:
    def test_truncated_to_hour_for_four_hours(self):
        w = hot_window(_dt(2026, 3, 10, 15, 42, 7))
        assert w.start == _dt(2026, 3, 10, 15)
        assert w.end == _dt(2026, 3, 10, 19)

    def test_custom_length(self):
        w = hot_window(_dt(2026, 3, 10, 23, 5), hours=2)
        assert w.end == _dt(2026, 3, 11, 1)


class TestWindowFor:
    @pytest.mark.parametrize("cadence", ["daily", "weekly", "monthly", "hot"])
    def test_start_before_end(self, cadence):
        w = window_for(cadence, _dt(2026, 3, 10, 15, 30))
        assert w.start < w.end

    def test_unknown_cadence(self):
        with pytest.raises(ValueError, match="Unknown cadence"):
            window_for("yearly", _dt(2026, 3, 10))


class TestHelpers:
    def test_seconds_until_midnight(self):
        assert seconds_until_midnight(_dt(2026, 3, 10, 23, 59, 0)) == 60

    def test_seconds_until_midnight_never_zero(self):
        assert seconds_until_midnight(_dt(2026, 3, 10, 23, 59, 59, 999999)) == 1

    def test_ensure_utc_attaches_tz_to_naive(self):
        assert ensure_utc(datetime(2026, 3, 10, 1)).tzinfo == timezone.utc
