"""Pytest configuration and fixtures."""
import itertools

import pytest

from domain import TimeEntry

_ids = itertools.count(1)


def make_entry(date="2024-03-01", minutes=60, **kwargs) -> TimeEntry:
    kwargs.setdefault("id", f"e{next(_ids)}")
    kwargs.setdefault("user_id", "user123")
    kwargs.setdefault("start_time", "09:00")
    return TimeEntry(date=date, minutes=minutes, **kwargs)


@pytest.fixture
def entry_factory():
    return make_entry


@pytest.fixture
def march_entries():
    """60 + 30 minutes on March 1st, 90 on March 2nd."""
    return [
        make_entry("2024-03-01", 60),
        make_entry("2024-03-01", 30),
        make_entry("2024-03-02", 90),
    ]
