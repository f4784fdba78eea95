# services.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from domain import Bucket, TimeEntry, NO_ACTIVITY_LABEL, NO_PROJECT_LABEL

PERIODS = {
    "week": "Esta Semana",
    "month": "Este Mês",
    "all": "Todo o Período",
    "custom": "Período Personalizado",
}


# -----------------------------------------------
# Fallback labels
# -----------------------------------------------
def resolve_project(entry: TimeEntry) -> str:
    return entry.project_name or NO_PROJECT_LABEL


def resolve_activity(entry: TimeEntry) -> str:
    return entry.activity_type or NO_ACTIVITY_LABEL


# -----------------------------------------------
# Grouping
# -----------------------------------------------
def aggregate(entries: Iterable[TimeEntry], key: Callable[[TimeEntry], str]) -> Dict[str, Bucket]:
    """
    Sums minutes and counts entries per key(entry).
    Keys keep first-encountered order. Never mutates the entries.
    """
    buckets: Dict[str, Bucket] = {}
    for e in entries:
        if not isinstance(e.minutes, int) or e.minutes < 0:
            raise ValueError(f"Entry {e.id!r} has invalid minutes: {e.minutes!r}")
        k = key(e)
        buckets[k] = buckets.get(k, Bucket()).add(e.minutes)
    return buckets


def aggregate_by_date(entries: Iterable[TimeEntry]) -> Dict[str, Bucket]:
    return aggregate(entries, lambda e: e.date)


def aggregate_by_project(entries: Iterable[TimeEntry]) -> Dict[str, Bucket]:
    return aggregate(entries, resolve_project)


def aggregate_by_activity(entries: Iterable[TimeEntry]) -> Dict[str, Bucket]:
    return aggregate(entries, resolve_activity)


# -----------------------------------------------
# Time windows (calendar dates, no time-of-day)
# -----------------------------------------------
def week_bounds(today: date) -> Tuple[date, date]:
    """Sunday on or before `today` and the Saturday after it."""
    # date.weekday(): Monday=0 ... Sunday=6
    days_since_sunday = (today.weekday() + 1) % 7
    start = today - timedelta(days=days_since_sunday)
    return start, start + timedelta(days=6)


def filter_range(entries: Iterable[TimeEntry], start: date, end: date) -> List[TimeEntry]:
    """Entries with start <= date <= end."""
    return [e for e in entries if start <= e.day <= end]


def filter_day(entries: Iterable[TimeEntry], day: date) -> List[TimeEntry]:
    key = day.isoformat()
    return [e for e in entries if e.date == key]


def filter_week(entries: Iterable[TimeEntry], today: date) -> List[TimeEntry]:
    start, end = week_bounds(today)
    return filter_range(entries, start, end)


def filter_month(entries: Iterable[TimeEntry], today: date) -> List[TimeEntry]:
    out = []
    for e in entries:
        d = e.day
        if d.year == today.year and d.month == today.month:
            out.append(e)
    return out


def filter_period(
    entries: Iterable[TimeEntry],
    period: str,
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[TimeEntry]:
    """Applies one of the report period filters (see PERIODS)."""
    if period == "week":
        return filter_week(entries, today)
    if period == "month":
        return filter_month(entries, today)
    if period == "custom" and start and end:
        return filter_range(entries, start, end)
    return list(entries)


# -----------------------------------------------
# Totals
# -----------------------------------------------
def total_minutes(entries: Iterable[TimeEntry]) -> int:
    return sum(e.minutes for e in entries)


def billable_minutes(entries: Iterable[TimeEntry]) -> int:
    return total_minutes(e for e in entries if e.is_billable)


def distinct_days(entries: Iterable[TimeEntry]) -> int:
    return len({e.date for e in entries})


def average_minutes_per_day(entries: Iterable[TimeEntry]) -> float:
    """Total minutes over the number of distinct dates present (0 if none)."""
    entries = list(entries)
    days = distinct_days(entries)
    if days == 0:
        return 0.0
    return total_minutes(entries) / days


@dataclass(frozen=True)
class DashboardTotals:
    today_minutes: int
    week_minutes: int
    month_minutes: int
    entry_count: int


def dashboard_totals(entries: Iterable[TimeEntry], today: date) -> DashboardTotals:
    entries = list(entries)
    return DashboardTotals(
        today_minutes=total_minutes(filter_day(entries, today)),
        week_minutes=total_minutes(filter_week(entries, today)),
        month_minutes=total_minutes(filter_month(entries, today)),
        entry_count=len(entries),
    )
