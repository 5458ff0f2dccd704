from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from core.broadcast import (
    AUDIENCE_ALL,
    AUDIENCE_CATEGORY,
    AUDIENCE_LANGUAGE,
    Audience,
    Broadcaster,
    BroadcastSessions,
)
from core.delivery import DeliverySender
from core.models import Subscriber


def _subscriber(chat_id: int, category: str, language: str) -> Subscriber:
    return Subscriber(chat_id, category, language, datetime(2024, 1, 1, tzinfo=timezone.utc))


class FakeDirectory:
    def __init__(self) -> None:
        self.subscribers = [
            _subscriber(1, "Leo", "en"),
            _subscriber(2, "Leo", "uk"),
            _subscriber(3, "Aries", "en"),
        ]

    def find_all(self) -> list[Subscriber]:
        return list(self.subscribers)

    def find_by_language(self, language: str) -> list[Subscriber]:
        return [s for s in self.subscribers if s.language == language]

    def find_by_category(self, category: str) -> list[Subscriber]:
        return [s for s in self.subscribers if s.category == category]


class FakeMessenger:
    def __init__(self, failing: set[int] | None = None) -> None:
        self.failing = failing or set()
        self.sent: list[tuple[int, str, bool]] = []

    async def send_message(self, chat_id: int, text: str, markup: bool = True) -> None:
        if chat_id in self.failing:
            raise ConnectionError("chat not found")
        self.sent.append((chat_id, text, markup))


def test_session_lifecycle_is_per_operator() -> None:
    sessions = BroadcastSessions()
    sessions.start(10, Audience(AUDIENCE_LANGUAGE, "en"))

    assert sessions.pending(10).audience == Audience(AUDIENCE_LANGUAGE, "en")
    assert sessions.pending(11) is None

    consumed = sessions.consume(10)

    assert consumed is not None
    assert consumed.operator_id == 10
    assert sessions.pending(10) is None
    assert sessions.consume(10) is None


def test_restarting_a_session_replaces_the_audience() -> None:
    sessions = BroadcastSessions()
    sessions.start(10, Audience(AUDIENCE_ALL))
    sessions.start(10, Audience(AUDIENCE_CATEGORY, "Leo"))

    assert sessions.consume(10).audience.kind == AUDIENCE_CATEGORY


def test_audience_validation() -> None:
    with pytest.raises(ValueError):
        Audience("everyone")
    with pytest.raises(ValueError):
        Audience(AUDIENCE_CATEGORY)


@pytest.mark.parametrize(
    "audience,expected",
    [
        (Audience(AUDIENCE_ALL), [1, 2, 3]),
        (Audience(AUDIENCE_LANGUAGE, "en"), [1, 3]),
        (Audience(AUDIENCE_CATEGORY, "Leo"), [1, 2]),
    ],
)
def test_broadcast_reaches_audience_as_plain_text(audience: Audience, expected: list[int]) -> None:
    messenger = FakeMessenger()
    broadcaster = Broadcaster(FakeDirectory(), DeliverySender(messenger))

    report = asyncio.run(broadcaster.broadcast(audience, "*hello*"))

    assert [chat_id for chat_id, _, _ in messenger.sent] == expected
    assert all(text == "*hello*" and markup is False for _, text, markup in messenger.sent)
    assert report.sent == len(expected)
    assert report.failed == 0


def test_broadcast_counts_failures_and_continues() -> None:
    messenger = FakeMessenger(failing={1})
    broadcaster = Broadcaster(FakeDirectory(), DeliverySender(messenger))

    report = asyncio.run(broadcaster.broadcast(Audience(AUDIENCE_ALL), "news"))

    assert report.sent == 2
    assert report.failed == 1
