"""On-demand read-through cache for today's horoscope.

Interactive paths (registration confirmation, /horoscope) need content
immediately. The resolver returns today's stored record when one exists and
otherwise generates, persists, and returns a fresh one. Concurrent misses for
the same (category, language, day) share a single in-flight task so the
backend is called at most once per key.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Optional, Tuple

from core.clock import local_day, local_now
from core.generator import ContentGenerator
from core.ports import ContentStorePort

LOGGER = logging.getLogger(__name__)

_Key = Tuple[str, str, date]


class OnDemandResolver:
    """Resolve today's text for a category and language."""

    def __init__(
        self,
        store: ContentStorePort,
        generator: ContentGenerator,
        persist_fallback: bool = True,
    ) -> None:
        self._store = store
        self._generator = generator
        self._persist_fallback = persist_fallback
        self._in_flight: dict[_Key, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def resolve(self, category: str, language: str, now: Optional[datetime] = None) -> str:
        now = local_now(now)
        key = (category, language, local_day(now))

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(category, language, now))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._release(key, done))
        else:
            LOGGER.debug("Joining in-flight generation for %s (%s)", category, language)

        # A cancelled caller must not cancel the load other callers wait on.
        return await asyncio.shield(task)

    def _release(self, key: _Key, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _load(self, category: str, language: str, now: datetime) -> str:
        try:
            record = self._store.find_today(category, language, now=now)
        except Exception:
            LOGGER.exception("Content lookup failed for %s (%s); generating", category, language)
            record = None

        if record is not None:
            return record.text

        result = await self._generator.generate(category, language)
        if result.is_fallback and not self._persist_fallback:
            return result.text

        try:
            self._store.save(category, language, result.text)
            LOGGER.info("Horoscope for %s (%s) saved", category, language)
        except Exception:
            LOGGER.exception("Failed to save horoscope for %s (%s)", category, language)
        return result.text
