"""Tests for the time aggregator."""
from datetime import date

import pytest

from domain import NO_ACTIVITY_LABEL, NO_PROJECT_LABEL, Bucket
from services import (
    aggregate,
    aggregate_by_activity,
    aggregate_by_date,
    aggregate_by_project,
    average_minutes_per_day,
    billable_minutes,
    dashboard_totals,
    distinct_days,
    filter_month,
    filter_period,
    filter_range,
    filter_week,
    total_minutes,
    week_bounds,
)


def test_aggregate_by_date_scenario(march_entries):
    buckets = aggregate_by_date(march_entries)

    assert {k: b.total_minutes for k, b in buckets.items()} == {"2024-03-01": 90, "2024-03-02": 90}
    assert buckets["2024-03-01"].entry_count == 2
    assert total_minutes(march_entries) == 180
    assert distinct_days(march_entries) == 2
    assert average_minutes_per_day(march_entries) == 90


def test_by_date_total_is_conserved(entry_factory):
    entries = [entry_factory(f"2024-03-{d:02d}", m) for d, m in [(1, 15), (3, 45), (1, 120), (9, 1), (3, 1440)]]
    buckets = aggregate_by_date(entries)

    assert sum(b.total_minutes for b in buckets.values()) == sum(e.minutes for e in entries)
    assert sum(b.entry_count for b in buckets.values()) == len(entries)


def test_empty_collection_gives_zeros():
    assert aggregate_by_date([]) == {}
    assert aggregate_by_project([]) == {}
    assert total_minutes([]) == 0
    assert billable_minutes([]) == 0
    assert distinct_days([]) == 0
    assert average_minutes_per_day([]) == 0


def test_missing_project_goes_to_fallback_once(entry_factory):
    entries = [
        entry_factory(minutes=10, project_name="Alpha"),
        entry_factory(minutes=20),
        entry_factory(minutes=30, project_name=""),
    ]
    buckets = aggregate_by_project(entries)

    assert buckets[NO_PROJECT_LABEL] == Bucket(total_minutes=50, entry_count=2)
    assert buckets["Alpha"] == Bucket(total_minutes=10, entry_count=1)
    assert sum(b.entry_count for b in buckets.values()) == 3


def test_grouping_is_case_exact(entry_factory):
    entries = [
        entry_factory(activity_type="Testes"),
        entry_factory(activity_type="testes"),
        entry_factory(),
    ]
    buckets = aggregate_by_activity(entries)

    assert set(buckets) == {"Testes", "testes", NO_ACTIVITY_LABEL}


def test_aggregate_does_not_mutate_entries(march_entries):
    before = list(march_entries)
    aggregate(march_entries, lambda e: e.date)
    assert march_entries == before


def test_negative_minutes_fail_loudly(entry_factory):
    with pytest.raises(ValueError, match="invalid minutes"):
        aggregate_by_date([entry_factory(minutes=-5)])


@pytest.mark.parametrize("today, sunday", [
    (date(2024, 3, 13), date(2024, 3, 10)),  # Wednesday
    (date(2024, 3, 10), date(2024, 3, 10)),  # Sunday itself
    (date(2024, 3, 16), date(2024, 3, 10)),  # Saturday
    (date(2024, 1, 2), date(2023, 12, 31)),  # crosses the year
])
def test_week_bounds_start_on_sunday(today, sunday):
    start, end = week_bounds(today)
    assert start == sunday
    assert (end - start).days == 6
    assert start.weekday() == 6


def test_filter_week_excludes_outside_entries(entry_factory):
    entries = [
        entry_factory("2024-03-09", 10),  # previous Saturday
        entry_factory("2024-03-10", 20),
        entry_factory("2024-03-16", 30),
        entry_factory("2024-03-17", 40),  # next Sunday
    ]
    week = filter_week(entries, date(2024, 3, 13))
    assert [e.minutes for e in week] == [20, 30]


def test_filter_month_matches_year_and_month(entry_factory):
    entries = [
        entry_factory("2024-03-01", 10),
        entry_factory("2024-03-31", 20),
        entry_factory("2023-03-15", 30),
        entry_factory("2024-04-01", 40),
    ]
    assert [e.minutes for e in filter_month(entries, date(2024, 3, 20))] == [10, 20]


def test_filter_range_single_day_scenario(march_entries):
    one_day = filter_range(march_entries, date(2024, 3, 1), date(2024, 3, 1))
    assert len(one_day) == 2
    assert total_minutes(one_day) == 90


def test_filter_period_custom_without_bounds_keeps_all(march_entries):
    assert filter_period(march_entries, "custom", date(2024, 3, 5)) == march_entries
    assert filter_period(march_entries, "all", date(2024, 3, 5)) == march_entries


def test_billable_minutes(entry_factory):
    entries = [entry_factory(minutes=60), entry_factory(minutes=45, is_billable=False)]
    assert billable_minutes(entries) == 60


def test_average_uses_distinct_days_not_span(entry_factory):
    entries = [entry_factory("2024-03-01", 60), entry_factory("2024-03-31", 120)]
    assert average_minutes_per_day(entries) == 90


def test_dashboard_totals(entry_factory):
    entries = [
        entry_factory("2024-03-13", 30),
        entry_factory("2024-03-11", 60),
        entry_factory("2024-03-02", 90),
        entry_factory("2024-02-28", 120),
    ]
    totals = dashboard_totals(entries, date(2024, 3, 13))

    assert totals.today_minutes == 30
    assert totals.week_minutes == 90
    assert totals.month_minutes == 180
    assert totals.entry_count == 4
