"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union


@dataclass(frozen=True)
class Subscriber:
    """A registered chat and its horoscope preferences."""

    chat_id: int
    category: str
    language: str
    registered_at: datetime


@dataclass(frozen=True)
class ContentRecord:
    """Persisted representation of one generated horoscope."""

    id: Optional[int]
    category: str
    language: str
    text: str
    created_at: datetime


@dataclass(frozen=True)
class Generated:
    """Text returned by the generation backend."""

    text: str

    @property
    def is_fallback(self) -> bool:
        return False


@dataclass(frozen=True)
class Fallback:
    """Placeholder text used when the generation backend failed."""

    text: str
    cause: BaseException

    @property
    def is_fallback(self) -> bool:
        return True


GenerationResult = Union[Generated, Fallback]
