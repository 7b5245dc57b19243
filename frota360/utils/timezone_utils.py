"""
Timezone and week utility functions for Frota360.
Handles conversion between UTC and the display timezone (Europe/Lisbon) and
the ISO week ids ("2025-W43") used to key every weekly record.
"""

import re
from datetime import date, datetime, timedelta, timezone
import pytz
from typing import Optional, Tuple, Union

WEEK_ID_PATTERN = re.compile(r'^\d{4}-W\d{2}$')


def get_display_timezone() -> str:
    """Timezone used to decide which week "today" belongs to."""
    try:
        from flask import current_app
        return current_app.config.get('DISPLAY_TIMEZONE', 'Europe/Lisbon')
    except RuntimeError:
        return 'Europe/Lisbon'


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def convert_utc_to_display(utc_dt: datetime) -> datetime:
    """
    Convert a UTC datetime to the configured display timezone.
    Naive datetimes are assumed to be UTC.
    """
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=timezone.utc)
    display_tz = pytz.timezone(get_display_timezone())
    return utc_dt.astimezone(display_tz)


def display_today() -> date:
    return convert_utc_to_display(utc_now()).date()


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Parse a date from an ISO string (date or datetime), a date or a datetime.

    Returns:
        The date, or None for empty input
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1]
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return date.fromisoformat(text[:10])


def coerce_date_fields(data: dict, *fields) -> dict:
    """Replace ISO strings in `data` with dates, in place."""
    for field in fields:
        if field in data:
            data[field] = parse_date(data[field])
    return data


def _week_monday(week_id: Optional[str]) -> Optional[date]:
    """Monday of the week, or None when the id names no real ISO week (e.g. 2025-W53)."""
    if not week_id or not WEEK_ID_PATTERN.match(week_id):
        return None
    try:
        monday = datetime.strptime(f"{week_id}-1", "%G-W%V-%u").date()
    except ValueError:
        return None
    # strptime rolls week 53 of a 52-week year over into week 1 of the next
    iso_year, iso_week, _ = monday.isocalendar()
    if f"{iso_year}-W{iso_week:02d}" != week_id:
        return None
    return monday


def is_valid_week_id(week_id: Optional[str]) -> bool:
    return _week_monday(week_id) is not None


def get_week_id(day: Union[date, datetime, None] = None) -> str:
    """ISO week id for a day, e.g. 2025-10-20 -> 2025-W43."""
    day = parse_date(day) if day is not None else display_today()
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def get_week_dates(week_id: str) -> Tuple[date, date]:
    """
    Monday and Sunday of an ISO week.

    Raises:
        ValueError: If the week id is malformed or the ISO year has no such week
    """
    monday = _week_monday(week_id)
    if monday is None:
        raise ValueError(f"Invalid week id: {week_id}")
    return monday, monday + timedelta(days=6)


def get_previous_week_id(week_id: str) -> str:
    monday, _ = get_week_dates(week_id)
    return get_week_id(monday - timedelta(days=7))


def format_week_label(week_id: str) -> str:
    """e.g. '20/10/2025 a 26/10/2025'"""
    start, end = get_week_dates(week_id)
    return f"{start.strftime('%d/%m/%Y')} a {end.strftime('%d/%m/%Y')}"
