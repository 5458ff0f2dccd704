"""Horoscope generation (core domain).

The generator never lets a backend failure escape: callers get either a
``Generated`` or a ``Fallback`` and decide what to do with each.
"""

from __future__ import annotations

import logging
from typing import Tuple

from core.config import Catalog, GenerationConfig
from core.models import Fallback, Generated, GenerationResult
from core.ports import CompletionPort

LOGGER = logging.getLogger(__name__)

FALLBACK_TEMPLATE = "Sorry, we could not generate a horoscope for {category} today."


def fallback_text(category: str) -> str:
    return FALLBACK_TEMPLATE.format(category=category)


class ContentGenerator:
    """Builds prompts and wraps the completion backend."""

    def __init__(self, backend: CompletionPort, catalog: Catalog, config: GenerationConfig) -> None:
        self._backend = backend
        self._catalog = catalog
        self._config = config

    def build_prompt(self, category: str, language: str) -> Tuple[str, str]:
        """Return (system_prompt, user_prompt) for one category and language."""

        if not self._catalog.has_category(category):
            raise ValueError(f"Unsupported category: {category}")
        instruction = self._catalog.language(language).instruction
        user_prompt = self._config.user_prompt.format(
            category=category,
            language_instruction=instruction,
        )
        return self._config.system_prompt, user_prompt

    async def generate(self, category: str, language: str) -> GenerationResult:
        system_prompt, user_prompt = self.build_prompt(category, language)
        try:
            text = await self._backend.complete(system_prompt, user_prompt, self._config.max_tokens)
            text = (text or "").strip()
            if not text:
                raise RuntimeError("Empty completion")
        except Exception as exc:
            LOGGER.exception("Horoscope generation failed for %s (%s)", category, language)
            return Fallback(text=fallback_text(category), cause=exc)
        return Generated(text=text)
