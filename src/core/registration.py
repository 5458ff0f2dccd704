"""Registration and "today's horoscope" flows used by interactive commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from core.config import Catalog
from core.models import Subscriber
from core.ports import SubscriberDirectoryPort
from core.resolver import OnDemandResolver


@dataclass(frozen=True)
class RegistrationOutcome:
    subscriber: Subscriber
    created: bool
    text: str


class RegistrationService:
    """Upserts subscribers and answers with today's content."""

    def __init__(
        self,
        catalog: Catalog,
        directory: SubscriberDirectoryPort,
        resolver: OnDemandResolver,
    ) -> None:
        self._catalog = catalog
        self._directory = directory
        self._resolver = resolver

    def profile(self, chat_id: int) -> Optional[Subscriber]:
        return self._directory.find_one(chat_id)

    async def register(self, chat_id: int, category: str, language: str) -> RegistrationOutcome:
        """Create or update a subscriber, then resolve today's horoscope.

        Unlike the resolver, directory failures propagate here: the caller is
        an interactive handler that answers with a generic error message.
        """

        if not self._catalog.has_category(category):
            raise ValueError(f"Unsupported category: {category}")
        if not self._catalog.has_language(language):
            raise ValueError(f"Unsupported language: {language}")

        created = self._directory.find_one(chat_id) is None
        subscriber = self._directory.upsert(chat_id, category, language)
        text = await self._resolver.resolve(category, language)
        return RegistrationOutcome(subscriber=subscriber, created=created, text=text)

    async def todays_content(self, chat_id: int) -> Optional[Tuple[Subscriber, str]]:
        subscriber = self._directory.find_one(chat_id)
        if subscriber is None:
            return None
        text = await self._resolver.resolve(subscriber.category, subscriber.language)
        return subscriber, text
