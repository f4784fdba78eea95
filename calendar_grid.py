# calendar_grid.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

from domain import TimeEntry
from services import aggregate_by_date, filter_day
from utils import MONTHS_PT

GRID_DAYS = 42  # 6 semanas x 7 dias
WEEKDAY_HEADERS = ["Dom", "Seg", "Ter", "Qua", "Qui", "Sex", "Sáb"]


@dataclass(frozen=True)
class CalendarDay:
    date: date
    total_minutes: int
    is_current_month: bool
    is_today: bool
    is_selected: bool = False


def month_grid(year: int, month0: int) -> List[date]:
    """
    42 consecutive dates for a month view, `month0` zero-based.
    Starts on the Sunday on or before the 1st.
    """
    first = date(year, month0 + 1, 1)
    start = first - timedelta(days=(first.weekday() + 1) % 7)
    return [start + timedelta(days=i) for i in range(GRID_DAYS)]


def build_calendar(
    entries: Iterable[TimeEntry],
    year: int,
    month0: int,
    today: date,
    selected: Optional[date] = None,
) -> List[CalendarDay]:
    totals = aggregate_by_date(entries)
    days = []
    for d in month_grid(year, month0):
        bucket = totals.get(d.isoformat())
        days.append(CalendarDay(
            date=d,
            total_minutes=bucket.total_minutes if bucket else 0,
            is_current_month=(d.year == year and d.month == month0 + 1),
            is_today=(d == today),
            is_selected=(d == selected),
        ))
    return days


def shift_month(year: int, month0: int, delta: int) -> Tuple[int, int]:
    y, m = divmod(year * 12 + month0 + delta, 12)
    return y, m


def next_month(year: int, month0: int) -> Tuple[int, int]:
    return shift_month(year, month0, 1)


def previous_month(year: int, month0: int) -> Tuple[int, int]:
    return shift_month(year, month0, -1)


def entries_for_day(entries: Iterable[TimeEntry], day: date) -> List[TimeEntry]:
    return sorted(filter_day(entries, day), key=lambda e: e.start_time)


def month_title(year: int, month0: int) -> str:
    return f"{MONTHS_PT[month0]} de {year}"
