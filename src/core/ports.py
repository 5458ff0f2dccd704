"""Ports (interfaces) used by the core.

Ports define the minimal contracts for storage, generation, and messaging
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from core.models import ContentRecord, Subscriber


class ContentStorePort(Protocol):
    """Storage operations for generated content."""

    def find_today(self, category: str, language: str, now: Optional[datetime] = None) -> Optional[ContentRecord]:
        ...

    def save(
        self,
        category: str,
        language: str,
        text: str,
        created_at: Optional[datetime] = None,
    ) -> ContentRecord:
        ...


class SubscriberDirectoryPort(Protocol):
    """Storage operations for subscribers."""

    def find_by_category_and_language(self, category: str, language: str) -> Sequence[Subscriber]:
        ...

    def upsert(self, chat_id: int, category: str, language: str) -> Subscriber:
        ...

    def find_one(self, chat_id: int) -> Optional[Subscriber]:
        ...

    def find_all(self) -> Sequence[Subscriber]:
        ...

    def find_by_language(self, language: str) -> Sequence[Subscriber]:
        ...

    def find_by_category(self, category: str) -> Sequence[Subscriber]:
        ...

    def count_subscribers(self) -> int:
        ...

    def count_registered_since(self, since: datetime) -> int:
        ...

    def list_registered_since(self, since: datetime) -> Sequence[Subscriber]:
        ...

    def count_by_language(self) -> dict[str, int]:
        ...

    def count_by_category(self) -> dict[str, int]:
        ...


class CompletionPort(Protocol):
    """A text-generation backend. Raises on any failure."""

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int) -> str:
        ...


class MessengerPort(Protocol):
    """Outbound message delivery. Raises on any failure."""

    async def send_message(self, chat_id: int, text: str, markup: bool = True) -> None:
        ...
