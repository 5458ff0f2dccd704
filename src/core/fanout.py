"""Daily generate-and-deliver batch job.

The job order is strict:
1) For every category, for every language (declaration order)
2) Generate fresh content (the store is never consulted first)
3) Persist it
4) Look up matching subscribers
5) Deliver one formatted message per subscriber

Everything runs sequentially; a failing recipient or a failing write is
logged and the loop moves on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from core.clock import local_day
from core.config import Catalog
from core.delivery import DeliverySender
from core.generator import ContentGenerator
from core.ports import ContentStorePort, SubscriberDirectoryPort

LOGGER = logging.getLogger(__name__)

# (category, language, text, day) -> message body
MessageFormatter = Callable[[str, str, str, date], str]


@dataclass
class FanoutReport:
    """Counters collected during one fanout run."""

    pairs: int = 0
    fallbacks: int = 0
    delivered: int = 0
    failed: int = 0
    aborted: bool = False


class FanoutJob:
    """Generate today's horoscopes for every pair and deliver them."""

    def __init__(
        self,
        catalog: Catalog,
        generator: ContentGenerator,
        store: ContentStorePort,
        directory: SubscriberDirectoryPort,
        sender: DeliverySender,
        format_message: MessageFormatter,
        persist_fallback: bool = True,
    ) -> None:
        self._catalog = catalog
        self._generator = generator
        self._store = store
        self._directory = directory
        self._sender = sender
        self._format_message = format_message
        self._persist_fallback = persist_fallback

    async def run(self, now: Optional[datetime] = None) -> FanoutReport:
        report = FanoutReport()
        day = local_day(now)
        LOGGER.info("Starting daily horoscope fanout for %s", day.isoformat())
        try:
            for category, language in self._catalog.pairs():
                await self._run_pair(category, language, day, report)
        except Exception:
            report.aborted = True
            LOGGER.exception("Horoscope fanout aborted")

        LOGGER.info(
            "Horoscope fanout finished: pairs=%s, fallbacks=%s, delivered=%s, failed=%s",
            report.pairs,
            report.fallbacks,
            report.delivered,
            report.failed,
        )
        return report

    async def _run_pair(self, category: str, language: str, day: date, report: FanoutReport) -> None:
        result = await self._generator.generate(category, language)
        report.pairs += 1
        if result.is_fallback:
            report.fallbacks += 1

        if not result.is_fallback or self._persist_fallback:
            try:
                self._store.save(category, language, result.text)
                LOGGER.info("Horoscope for %s (%s) saved", category, language)
            except Exception:
                LOGGER.exception("Failed to save horoscope for %s (%s)", category, language)

        try:
            subscribers = self._directory.find_by_category_and_language(category, language)
        except Exception:
            LOGGER.exception("Subscriber lookup failed for %s (%s)", category, language)
            return

        message = self._format_message(category, language, result.text, day)
        for subscriber in subscribers:
            if await self._sender.send(subscriber.chat_id, message):
                report.delivered += 1
            else:
                report.failed += 1
