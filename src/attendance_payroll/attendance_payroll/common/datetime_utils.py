from __future__ import annotations

import time
from datetime import date, datetime


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours between two timestamps, never negative."""
    return max(0.0, (end - start).total_seconds() / 3600.0)
