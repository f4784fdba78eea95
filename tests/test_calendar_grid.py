"""Tests for the month calendar grid."""
from datetime import date, timedelta

import pytest

from calendar_grid import build_calendar, entries_for_day, month_grid, month_title, next_month, previous_month


@pytest.mark.parametrize("year, month0", [(2024, 0), (2024, 1), (2024, 2), (2023, 9), (2026, 1), (2015, 1)])
def test_grid_is_42_contiguous_days_from_sunday(year, month0):
    grid = month_grid(year, month0)

    assert len(grid) == 42
    assert grid[0].weekday() == 6  # Sunday
    assert all(b - a == timedelta(days=1) for a, b in zip(grid, grid[1:]))
    assert grid[0] <= date(year, month0 + 1, 1) < grid[0] + timedelta(days=7)


def test_grid_for_month_starting_on_sunday():
    # September 2024 starts on a Sunday
    grid = month_grid(2024, 8)
    assert grid[0] == date(2024, 9, 1)
    assert grid[-1] == date(2024, 10, 12)


def test_march_2024_grid_starts_in_february():
    grid = month_grid(2024, 2)
    assert grid[0] == date(2024, 2, 25)


def test_build_calendar_annotations(march_entries):
    days = build_calendar(march_entries, 2024, 2, today=date(2024, 3, 2), selected=date(2024, 3, 1))
    by_date = {d.date: d for d in days}

    assert by_date[date(2024, 3, 1)].total_minutes == 90
    assert by_date[date(2024, 3, 1)].is_selected
    assert by_date[date(2024, 3, 2)].is_today
    assert by_date[date(2024, 3, 3)].total_minutes == 0
    assert not by_date[date(2024, 2, 25)].is_current_month
    assert by_date[date(2024, 3, 31)].is_current_month
    assert sum(d.is_today for d in days) == 1


@pytest.mark.parametrize("start, expected", [((2024, 0), (2024, 1)), ((2024, 11), (2025, 0))])
def test_next_month_wraps_year(start, expected):
    assert next_month(*start) == expected


@pytest.mark.parametrize("start, expected", [((2024, 5), (2024, 4)), ((2024, 0), (2023, 11))])
def test_previous_month_wraps_year(start, expected):
    assert previous_month(*start) == expected


def test_entries_for_day_sorted_by_start(entry_factory):
    late = entry_factory("2024-03-01", start_time="14:00")
    early = entry_factory("2024-03-01", start_time="08:00")
    other = entry_factory("2024-03-02")
    assert entries_for_day([late, other, early], date(2024, 3, 1)) == [early, late]


def test_month_title():
    assert month_title(2024, 2) == "março de 2024"
