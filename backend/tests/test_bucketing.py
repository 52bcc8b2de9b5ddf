"""
Tests for bucketing.py - windows, bucket keys and the consecutive-day walk.
"""
import pytest
import sys
import os
from datetime import date, datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bucketing import (
    Granularity,
    bucket_key,
    consecutive_days,
    day_keys,
    day_window,
    month_keys,
    month_window,
    week_keys,
    week_window,
)
from errors import ValidationError

NOW = datetime(2024, 1, 30, 12, 0, 0)  # Tuesday, ISO week 5


class TestWindows:
    """Tests for trailing day/week/month windows."""

    def test_day_window_spans_whole_days(self):
        start, end = day_window(NOW, 30)
        assert start == datetime(2024, 1, 1, 0, 0, 0)
        assert end.date() == date(2024, 1, 30)
        assert (end.hour, end.minute, end.second) == (23, 59, 59)

    def test_single_day_window_is_today(self):
        start, end = day_window(NOW, 1)
        assert start.date() == end.date() == date(2024, 1, 30)

    def test_week_window_starts_on_monday(self):
        start, end = week_window(NOW, 2)
        assert start == datetime(2024, 1, 22)
        assert start.weekday() == 0
        assert end.date() == date(2024, 2, 4)
        assert end.date().weekday() == 6

    def test_month_window_crosses_year(self):
        start, end = month_window(NOW, 3)
        assert start == datetime(2023, 11, 1)
        assert end.date() == date(2024, 1, 31)

    def test_month_window_handles_february(self):
        start, end = month_window(datetime(2024, 2, 10), 1)
        assert start.date() == date(2024, 2, 1)
        assert end.date() == date(2024, 2, 29)

    @pytest.mark.parametrize("count", [0, -3])
    def test_non_positive_counts_rejected(self, count):
        with pytest.raises(ValidationError) as excinfo:
            day_window(NOW, count)
        assert excinfo.value.errors[0]["field"] == "days"
        with pytest.raises(ValidationError):
            week_window(NOW, count)
        with pytest.raises(ValidationError):
            month_window(NOW, count)

    def test_non_integer_count_rejected(self):
        with pytest.raises(ValidationError):
            day_window(NOW, 2.5)

    def test_oversized_counts_rejected(self):
        with pytest.raises(ValidationError) as excinfo:
            day_window(NOW, 1_000_000)
        assert excinfo.value.errors == [{"field": "days", "message": "days must be at most 3650"}]
        with pytest.raises(ValidationError):
            week_window(NOW, 521)
        with pytest.raises(ValidationError):
            month_keys(NOW, 30_000)

    def test_largest_allowed_windows(self):
        assert len(day_keys(NOW, 3650)) == 3650
        assert len(month_keys(NOW, 120)) == 120
        assert week_keys(NOW, 520)[-1] == "2024-W05"


class TestBucketKeys:
    """Tests for canonical bucket keys."""

    def test_day_key(self):
        assert bucket_key(datetime(2024, 1, 5, 23, 59), Granularity.DAY) == "2024-01-05"

    def test_month_key(self):
        assert bucket_key(date(2024, 3, 1), Granularity.MONTH) == "2024-03"

    def test_week_key_is_zero_padded_iso_week(self):
        assert bucket_key(date(2024, 1, 30), Granularity.WEEK) == "2024-W05"

    def test_week_key_uses_iso_year_at_year_boundary(self):
        # Monday 2024-12-30 belongs to the first ISO week of 2025
        assert bucket_key(date(2024, 12, 30), Granularity.WEEK) == "2025-W01"
        # Sunday 2023-01-01 still belongs to the last ISO week of 2022
        assert bucket_key(date(2023, 1, 1), Granularity.WEEK) == "2022-W52"

    def test_day_keys_cover_every_day_in_order(self):
        keys = day_keys(NOW, 30)
        assert len(keys) == 30
        assert keys[0] == "2024-01-01"
        assert keys[-1] == "2024-01-30"
        assert keys == sorted(keys)

    def test_week_keys(self):
        assert week_keys(NOW, 3) == ["2024-W03", "2024-W04", "2024-W05"]

    def test_month_keys(self):
        assert month_keys(NOW, 3) == ["2023-11", "2023-12", "2024-01"]


class TestConsecutiveDays:
    """Tests for the backward walk from today."""

    def test_empty(self):
        assert consecutive_days([], date(2024, 1, 30)) == 0

    def test_stops_at_first_gap(self):
        days = [date(2024, 1, 30), date(2024, 1, 29), date(2024, 1, 27)]
        assert consecutive_days(days, date(2024, 1, 30)) == 2

    def test_today_without_completion_breaks_streak(self):
        days = [date(2024, 1, 29), date(2024, 1, 28)]
        assert consecutive_days(days, date(2024, 1, 30)) == 0
