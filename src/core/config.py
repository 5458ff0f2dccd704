"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Mapping, Tuple


@dataclass(frozen=True)
class Language:
    """A supported language: display label plus the prompt instruction phrase."""

    code: str
    label: str
    instruction: str


@dataclass(frozen=True)
class Catalog:
    """The fixed category and language enumerations shared by every component.

    Declaration order matters: the fanout job walks categories and languages
    in exactly this order.
    """

    categories: Tuple[str, ...]
    languages: Tuple[Language, ...]

    @classmethod
    def from_mapping(cls, categories: list[str], languages: Mapping[str, Mapping[str, str]]) -> "Catalog":
        return cls(
            categories=tuple(categories),
            languages=tuple(
                Language(code=code, label=entry.get("label", code), instruction=entry.get("instruction", ""))
                for code, entry in languages.items()
            ),
        )

    @property
    def language_codes(self) -> Tuple[str, ...]:
        return tuple(language.code for language in self.languages)

    def has_category(self, category: str) -> bool:
        return category in self.categories

    def has_language(self, code: str) -> bool:
        return code in self.language_codes

    def language(self, code: str) -> Language:
        for language in self.languages:
            if language.code == code:
                return language
        raise ValueError(f"Unsupported language: {code}")

    def language_label(self, code: str) -> str:
        # Stored rows may outlive a config change; show the raw code then.
        if not self.has_language(code):
            return code
        return self.language(code).label

    def pairs(self) -> Iterator[Tuple[str, str]]:
        """Yield (category, language_code) in declaration order."""

        for category in self.categories:
            for code in self.language_codes:
                yield category, code


@dataclass(frozen=True)
class GenerationConfig:
    """Text generation settings consumed by the content generator."""

    model: str
    max_tokens: int
    system_prompt: str
    user_prompt: str
    persist_fallback: bool = True
