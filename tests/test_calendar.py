"""Tests for wikigantt.calendar: off-days, duration adjustment, end dates."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from wikigantt.calendar import (
    OffDayCalendar,
    add_business_days,
    adjust_duration,
    end_date,
    format_date,
    parse_date,
)

FRIDAY = date(2024, 3, 8)
MONDAY = date(2024, 3, 4)

weekends = OffDayCalendar().is_off_day


# ═══════════════════════════════════════════════════════════════════
#  OffDayCalendar
# ═══════════════════════════════════════════════════════════════════


class TestOffDayCalendar:
    """Weekly pattern, dated holidays and yearly holidays."""

    def test_default_is_saturday_and_sunday(self):
        cal = OffDayCalendar()
        assert cal.is_off_day(date(2024, 3, 9))
        assert cal.is_off_day(date(2024, 3, 10))
        assert not cal.is_off_day(FRIDAY)

    def test_holiday_matches_full_date(self):
        cal = OffDayCalendar(holidays={date(2024, 3, 6)})
        assert cal.is_off_day(date(2024, 3, 6))
        assert not cal.is_off_day(date(2025, 3, 6))

    def test_yearly_holiday_matches_every_year(self):
        cal = OffDayCalendar(yearly_holidays={(12, 25)})
        assert cal.is_off_day(date(2024, 12, 25))
        assert cal.is_off_day(date(2030, 12, 25))

    def test_datetime_is_reduced_to_date(self):
        cal = OffDayCalendar(holidays={date(2024, 3, 6)})
        assert cal.is_off_day(datetime(2024, 3, 6, 17, 30))

    def test_all_days_off_rejected(self):
        with pytest.raises(ValueError, match="working weekday"):
            OffDayCalendar(off_weekdays=range(7))

    def test_bad_weekday_number_rejected(self):
        with pytest.raises(ValueError, match="0-6"):
            OffDayCalendar(off_weekdays={7})


# ═══════════════════════════════════════════════════════════════════
#  adjust_duration / end_date
# ═══════════════════════════════════════════════════════════════════


class TestAdjustDuration:
    """The calendar walk that stretches a duration over off-days."""

    def test_friday_two_days_spans_the_weekend(self):
        adjusted = adjust_duration(FRIDAY, 2, weekends)
        assert adjusted == 4
        assert end_date(FRIDAY, adjusted) == date(2024, 3, 11)

    def test_monday_two_days_unchanged(self):
        adjusted = adjust_duration(MONDAY, 2, weekends)
        assert adjusted == 2
        assert end_date(MONDAY, adjusted) == date(2024, 3, 5)

    def test_no_off_days_is_identity(self):
        for days in range(0, 15):
            assert adjust_duration(MONDAY, days, lambda d: False) == days

    def test_start_on_saturday_counts_the_weekend(self):
        assert adjust_duration(date(2024, 3, 9), 1, weekends) == 3

    def test_holiday_inside_the_run(self):
        cal = OffDayCalendar(holidays={date(2024, 3, 5)})
        assert adjust_duration(MONDAY, 2, cal.is_off_day) == 3

    def test_holiday_on_a_weekend_counted_once(self):
        cal = OffDayCalendar(holidays={date(2024, 3, 9)})
        assert adjust_duration(FRIDAY, 2, cal.is_off_day) == 4

    def test_end_date_is_a_working_day(self):
        for offset in range(7):
            start = date(2024, 3, 4 + offset)
            for days in range(1, 12):
                adjusted = adjust_duration(start, days, weekends)
                assert adjusted >= days
                assert not weekends(end_date(start, adjusted))

    def test_zero_duration_ends_on_start(self):
        assert end_date(MONDAY, 0) == MONDAY
        assert end_date(MONDAY, 1) == MONDAY


# ═══════════════════════════════════════════════════════════════════
#  add_business_days / date text
# ═══════════════════════════════════════════════════════════════════


class TestBusinessDays:
    def test_zero_days_returns_start(self):
        assert add_business_days(MONDAY, 0) == MONDAY

    def test_skips_weekend(self):
        assert add_business_days(FRIDAY, 1) == date(2024, 3, 11)

    def test_full_week(self):
        assert add_business_days(MONDAY, 5) == date(2024, 3, 11)

    def test_custom_calendar(self):
        cal = OffDayCalendar(holidays={date(2024, 3, 5)})
        assert add_business_days(MONDAY, 1, cal.is_off_day) == date(2024, 3, 6)


class TestDateText:
    def test_parse_accepts_unpadded(self):
        assert parse_date("2024-3-4") == MONDAY

    def test_format_is_padded(self):
        assert format_date(MONDAY) == "2024-03-04"

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_date("04/03/2024")
