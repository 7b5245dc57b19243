"""
Tests for timezone and week utility functions
"""
import pytest
from datetime import date, datetime, timezone
from frota360.utils.timezone_utils import (
    coerce_date_fields,
    convert_utc_to_display,
    format_week_label,
    get_display_timezone,
    get_previous_week_id,
    get_week_dates,
    get_week_id,
    is_valid_week_id,
    parse_date,
    utc_now,
)

class TestTimezoneUtils:

    def test_get_display_timezone(self):
        """Outside an app context the default timezone is used"""
        assert get_display_timezone() == "Europe/Lisbon"

    def test_convert_utc_to_display_summer(self):
        """Lisbon is UTC+1 in summer"""
        utc_dt = datetime(2025, 7, 15, 10, 30, 0, tzinfo=timezone.utc)
        display_dt = convert_utc_to_display(utc_dt)
        assert display_dt.hour == 11
        assert display_dt.tzinfo.zone == "Europe/Lisbon"

    def test_convert_utc_to_display_winter_naive(self):
        """Naive datetimes are treated as UTC; Lisbon is UTC+0 in winter"""
        display_dt = convert_utc_to_display(datetime(2025, 1, 15, 23, 30, 0))
        assert display_dt.hour == 23
        assert display_dt.day == 15

    def test_utc_now(self):
        now = utc_now()
        assert now.tzinfo == timezone.utc

    def test_parse_date(self):
        assert parse_date("2025-10-20") == date(2025, 10, 20)
        assert parse_date("2025-10-20T08:00:00Z") == date(2025, 10, 20)
        assert parse_date(datetime(2025, 10, 20, 8)) == date(2025, 10, 20)
        assert parse_date("") is None
        with pytest.raises(ValueError):
            parse_date("20/10/2025")

    def test_coerce_date_fields(self):
        data = coerce_date_fields({'start_date': '2025-10-01', 'name': 'x'}, 'start_date', 'end_date')
        assert data == {'start_date': date(2025, 10, 1), 'name': 'x'}


class TestWeekIds:

    def test_week_id_for_day(self):
        assert get_week_id(date(2025, 10, 20)) == "2025-W43"
        assert get_week_id(date(2025, 10, 26)) == "2025-W43"

    def test_iso_year_boundary(self):
        """29 Dec 2025 already belongs to week 1 of 2026"""
        assert get_week_id(date(2025, 12, 29)) == "2026-W01"
        assert get_week_dates("2026-W01") == (date(2025, 12, 29), date(2026, 1, 4))

    def test_week_dates(self):
        assert get_week_dates("2025-W43") == (date(2025, 10, 20), date(2025, 10, 26))
        with pytest.raises(ValueError):
            get_week_dates("2025-43")

    def test_previous_week(self):
        assert get_previous_week_id("2025-W43") == "2025-W42"
        assert get_previous_week_id("2026-W01") == "2025-W52"

    def test_is_valid_week_id(self):
        assert is_valid_week_id("2025-W43")
        assert not is_valid_week_id("2025-W4")
        assert not is_valid_week_id(None)

    def test_week_53_only_in_long_years(self):
        """2025 has 52 ISO weeks, 2026 starts on a Thursday and has 53"""
        assert not is_valid_week_id("2025-W53")
        with pytest.raises(ValueError):
            get_week_dates("2025-W53")
        assert is_valid_week_id("2026-W53")
        assert get_week_dates("2026-W53") == (date(2026, 12, 28), date(2027, 1, 3))
        assert get_previous_week_id("2027-W01") == "2026-W53"
        assert not is_valid_week_id("2025-W00")
        assert not is_valid_week_id("2025-W60")

    def test_format_week_label(self):
        assert format_week_label("2025-W43") == "20/10/2025 a 26/10/2025"
