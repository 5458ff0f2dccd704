"""Local-day helpers (core domain)."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional


def local_now(now: Optional[datetime] = None) -> datetime:
    """Return an aware datetime in the local timezone."""

    if now is None:
        return datetime.now().astimezone()
    return now.astimezone()


def start_of_local_day(now: Optional[datetime] = None) -> datetime:
    """Return local midnight of the day containing ``now`` (aware)."""

    current = local_now(now)
    return datetime.combine(current.date(), time.min).astimezone()


def local_day(now: Optional[datetime] = None) -> date:
    return local_now(now).date()
