"""Operator broadcast: audience sessions and delivery.

A session is created when an operator picks an audience, consumed by the
next text message from the same operator, and then gone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from core.delivery import DeliverySender
from core.models import Subscriber
from core.ports import SubscriberDirectoryPort

LOGGER = logging.getLogger(__name__)

AUDIENCE_ALL = "all"
AUDIENCE_LANGUAGE = "language"
AUDIENCE_CATEGORY = "category"


@dataclass(frozen=True)
class Audience:
    kind: str
    value: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in {AUDIENCE_ALL, AUDIENCE_LANGUAGE, AUDIENCE_CATEGORY}:
            raise ValueError(f"Unsupported audience: {self.kind}")
        if self.kind != AUDIENCE_ALL and not self.value:
            raise ValueError(f"Audience {self.kind} requires a value")


@dataclass(frozen=True)
class BroadcastSession:
    operator_id: int
    audience: Audience
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class BroadcastReport:
    sent: int
    failed: int


class BroadcastSessions:
    """Pending broadcast sessions keyed by operator id."""

    def __init__(self) -> None:
        self._sessions: dict[int, BroadcastSession] = {}

    def start(self, operator_id: int, audience: Audience) -> BroadcastSession:
        session = BroadcastSession(operator_id=operator_id, audience=audience)
        self._sessions[operator_id] = session
        return session

    def pending(self, operator_id: int) -> Optional[BroadcastSession]:
        return self._sessions.get(operator_id)

    def consume(self, operator_id: int) -> Optional[BroadcastSession]:
        return self._sessions.pop(operator_id, None)

    def clear(self, operator_id: int) -> None:
        self._sessions.pop(operator_id, None)


class Broadcaster:
    """Send an operator message to every subscriber in an audience."""

    def __init__(self, directory: SubscriberDirectoryPort, sender: DeliverySender) -> None:
        self._directory = directory
        self._sender = sender

    def recipients(self, audience: Audience) -> Sequence[Subscriber]:
        if audience.kind == AUDIENCE_LANGUAGE:
            return self._directory.find_by_language(audience.value)
        if audience.kind == AUDIENCE_CATEGORY:
            return self._directory.find_by_category(audience.value)
        return self._directory.find_all()

    async def broadcast(self, audience: Audience, text: str) -> BroadcastReport:
        sent = 0
        failed = 0
        for subscriber in self.recipients(audience):
            # Operator text is sent verbatim, without markup parsing.
            if await self._sender.send(subscriber.chat_id, text, markup=False):
                sent += 1
            else:
                failed += 1
        LOGGER.info("Broadcast to %s finished: sent=%s, failed=%s", audience.kind, sent, failed)
        return BroadcastReport(sent=sent, failed=failed)
