"""
Calendar bucketing for trend output.

All windows are computed from an injected "now" in the user's local calendar
(naive datetimes). Weeks follow ISO-8601: they start on Monday, and week 1 is
the week holding the year's first Thursday. Week keys therefore use the ISO
year, which differs from the calendar year around New Year
(2024-12-30 is "2025-W01").
"""
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, Union

import config
from errors import ValidationError


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


def _check_count(field: str, value, limit: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError.single(field, f"{field} must be a positive integer")
    if value > limit:
        raise ValidationError.single(field, f"{field} must be at most {limit}")


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def _month_index(day: date) -> int:
    return day.year * 12 + (day.month - 1)


def _month_from_index(index: int) -> date:
    return date(index // 12, index % 12 + 1, 1)


def day_window(now: datetime, days: int) -> tuple[datetime, datetime]:
    """The trailing `days` calendar days ending with now's day, both ends inclusive."""
    _check_count("days", days, config.MAX_TREND_DAYS)
    today = _as_date(now)
    return start_of_day(today - timedelta(days=days - 1)), end_of_day(today)


def week_window(now: datetime, weeks: int) -> tuple[datetime, datetime]:
    """The trailing `weeks` ISO weeks, Monday of the first through Sunday of now's week."""
    _check_count("weeks", weeks, config.MAX_TREND_WEEKS)
    today = _as_date(now)
    monday = today - timedelta(days=today.weekday())
    first_monday = monday - timedelta(weeks=weeks - 1)
    return start_of_day(first_monday), end_of_day(monday + timedelta(days=6))


def month_window(now: datetime, months: int) -> tuple[datetime, datetime]:
    """The trailing `months` calendar months ending with now's month."""
    _check_count("months", months, config.MAX_TREND_MONTHS)
    current = _month_index(_as_date(now))
    first = _month_from_index(current - (months - 1))
    last = _month_from_index(current + 1) - timedelta(days=1)
    return start_of_day(first), end_of_day(last)


def bucket_key(timestamp: Union[date, datetime], granularity: Granularity) -> str:
    """Canonical key of the bucket holding `timestamp`."""
    day = _as_date(timestamp)
    if granularity == Granularity.DAY:
        return day.isoformat()
    if granularity == Granularity.WEEK:
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if granularity == Granularity.MONTH:
        return f"{day.year:04d}-{day.month:02d}"
    raise ValueError(f"Unknown granularity: {granularity}")


def day_keys(now: datetime, days: int) -> list[str]:
    """Every day key of the window, oldest first."""
    start, _ = day_window(now, days)
    first = start.date()
    return [bucket_key(first + timedelta(days=i), Granularity.DAY) for i in range(days)]


def week_keys(now: datetime, weeks: int) -> list[str]:
    start, _ = week_window(now, weeks)
    first = start.date()
    return [bucket_key(first + timedelta(weeks=i), Granularity.WEEK) for i in range(weeks)]


def month_keys(now: datetime, months: int) -> list[str]:
    start, _ = month_window(now, months)
    first = _month_index(start.date())
    return [
        bucket_key(_month_from_index(first + i), Granularity.MONTH)
        for i in range(months)
    ]


def consecutive_days(days: Iterable[date], today: date) -> int:
    """
    Length of the run of consecutive dates ending at `today`.
    Today only counts if it is present; the walk stops at the first gap.
    """
    present = set(days)
    streak = 0
    current = today
    while current in present:
        streak += 1
        current -= timedelta(days=1)
    return streak
