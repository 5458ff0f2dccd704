"""Aggregations for the administrator surface."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from core.clock import local_now, start_of_local_day
from core.models import Subscriber
from core.ports import SubscriberDirectoryPort


@dataclass(frozen=True)
class Overview:
    total: int
    new_today: int


def overview(directory: SubscriberDirectoryPort, now: Optional[datetime] = None) -> Overview:
    return Overview(
        total=directory.count_subscribers(),
        new_today=directory.count_registered_since(start_of_local_day(now)),
    )


def new_today(directory: SubscriberDirectoryPort, now: Optional[datetime] = None) -> Sequence[Subscriber]:
    return directory.list_registered_since(start_of_local_day(now))


def group_by_local_day(subscribers: Iterable[Subscriber]) -> List[Tuple[str, int]]:
    """Return (YYYY-MM-DD, count) pairs sorted by day."""

    counts = Counter(subscriber.registered_at.astimezone().date().isoformat() for subscriber in subscribers)
    return sorted(counts.items())


def registrations_by_day(
    directory: SubscriberDirectoryPort,
    days: int = 7,
    now: Optional[datetime] = None,
) -> List[Tuple[str, int]]:
    since = local_now(now) - timedelta(days=days)
    return group_by_local_day(directory.list_registered_since(since))
