from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Optional

from adapters import message_formatting as fmt
from adapters.telegram_bot import TelegramBot
from core.broadcast import AUDIENCE_CATEGORY, Audience, Broadcaster, BroadcastSessions
from core.config import Catalog, GenerationConfig, Language
from core.delivery import DeliverySender
from core.generator import ContentGenerator
from core.models import ContentRecord, Subscriber
from core.registration import RegistrationService
from core.resolver import OnDemandResolver

ADMIN = 999

CATALOG = Catalog(
    categories=("Aries", "Leo"),
    languages=(Language("en", "English", "in English"), Language("uk", "Українська", "in Ukrainian")),
)

CONFIG = GenerationConfig(
    model="test-model",
    max_tokens=800,
    system_prompt="system",
    user_prompt="{category} {language_instruction}",
)


class FakeStorage:
    """In-memory content store and subscriber directory."""

    def __init__(self) -> None:
        self.subscribers: dict[int, Subscriber] = {}
        self.records: list[ContentRecord] = []

    def find_today(self, category: str, language: str, now: Optional[datetime] = None) -> Optional[ContentRecord]:
        for record in reversed(self.records):
            if record.category == category and record.language == language:
                return record
        return None

    def save(self, category: str, language: str, text: str, created_at: Optional[datetime] = None) -> ContentRecord:
        record = ContentRecord(len(self.records) + 1, category, language, text, datetime.now(timezone.utc))
        self.records.append(record)
        return record

    def find_one(self, chat_id: int) -> Optional[Subscriber]:
        return self.subscribers.get(chat_id)

    def upsert(self, chat_id: int, category: str, language: str) -> Subscriber:
        existing = self.subscribers.get(chat_id)
        registered_at = existing.registered_at if existing else datetime.now(timezone.utc)
        subscriber = Subscriber(chat_id, category, language, registered_at)
        self.subscribers[chat_id] = subscriber
        return subscriber

    def find_all(self) -> list[Subscriber]:
        return list(self.subscribers.values())

    def find_by_category(self, category: str) -> list[Subscriber]:
        return [s for s in self.subscribers.values() if s.category == category]

    def find_by_language(self, language: str) -> list[Subscriber]:
        return [s for s in self.subscribers.values() if s.language == language]

    def count_subscribers(self) -> int:
        return len(self.subscribers)

    def count_registered_since(self, since: datetime) -> int:
        return len([s for s in self.subscribers.values() if s.registered_at >= since])


class FakeBackend:
    def __init__(self) -> None:
        self.calls = 0

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int) -> str:
        self.calls += 1
        return f"Stars say hi to {user_prompt}"


class FakeMessenger:
    def __init__(self) -> None:
        self.sent: list[tuple[int, str, bool]] = []

    async def send_message(self, chat_id: int, text: str, markup: bool = True) -> None:
        self.sent.append((chat_id, text, markup))


class FakeEvent:
    def __init__(
        self,
        *,
        chat_id: int = 42,
        sender_id: Optional[int] = None,
        raw_text: str = "",
        data: bytes = b"",
        pattern: Optional[bytes] = None,
    ) -> None:
        self.chat_id = chat_id
        self.sender_id = sender_id if sender_id is not None else chat_id
        self.raw_text = raw_text
        self.data = data
        self.data_match = re.match(pattern, data) if pattern else None
        self.responses: list[tuple[str, dict]] = []
        self.edits: list[tuple[str, dict]] = []
        self.answered = False

    async def respond(self, text: str, **kwargs) -> None:
        self.responses.append((text, kwargs))

    async def edit(self, text: str, **kwargs) -> None:
        self.edits.append((text, kwargs))

    async def answer(self, *args, **kwargs) -> None:
        self.answered = True


def _bot() -> tuple[TelegramBot, FakeStorage, FakeBackend, FakeMessenger, BroadcastSessions]:
    storage = FakeStorage()
    backend = FakeBackend()
    messenger = FakeMessenger()
    sessions = BroadcastSessions()
    resolver = OnDemandResolver(storage, ContentGenerator(backend, CATALOG, CONFIG))
    bot = TelegramBot(
        catalog=CATALOG,
        registration=RegistrationService(CATALOG, storage, resolver),
        directory=storage,
        broadcaster=Broadcaster(storage, DeliverySender(messenger)),
        sessions=sessions,
        admin_id=ADMIN,
    )
    return bot, storage, backend, messenger, sessions


def test_category_choice_registers_and_sends_todays_horoscope() -> None:
    bot, storage, backend, _, _ = _bot()
    event = FakeEvent(data=b"zodiac_uk_1", pattern=rb"^zodiac_(\w+?)_(\d+)$")

    asyncio.run(bot.on_category_chosen(event))

    assert storage.subscribers[42].category == "Leo"
    assert storage.subscribers[42].language == "uk"
    assert event.edits[0][0].startswith("You have successfully registered")
    body, kwargs = event.responses[0]
    assert "Stars say hi to Leo in Ukrainian" in body
    assert kwargs == {"parse_mode": "md"}
    assert backend.calls == 1


def test_reregistration_reports_update_and_reuses_content() -> None:
    bot, storage, backend, _, _ = _bot()
    pattern = rb"^zodiac_(\w+?)_(\d+)$"
    asyncio.run(bot.on_category_chosen(FakeEvent(data=b"zodiac_en_0", pattern=pattern)))
    second = FakeEvent(data=b"zodiac_en_0", pattern=pattern)

    asyncio.run(bot.on_category_chosen(second))

    assert second.edits[0][0].startswith("Your profile has been updated")
    assert backend.calls == 1
    assert len(storage.subscribers) == 1


def test_unknown_category_index_replies_generic_error() -> None:
    bot, storage, _, _, _ = _bot()
    event = FakeEvent(data=b"zodiac_en_7", pattern=rb"^zodiac_(\w+?)_(\d+)$")

    asyncio.run(bot.on_category_chosen(event))

    assert event.responses == [(fmt.GENERIC_ERROR, {})]
    assert storage.subscribers == {}


def test_horoscope_command_requires_registration() -> None:
    bot, _, backend, _, _ = _bot()
    event = FakeEvent(raw_text="/horoscope")

    asyncio.run(bot.on_horoscope(event))

    assert event.responses[0][0] == fmt.NOT_REGISTERED
    assert "buttons" in event.responses[0][1]
    assert backend.calls == 0


def test_horoscope_command_for_subscriber() -> None:
    bot, storage, _, _, _ = _bot()
    storage.upsert(42, "Aries", "en")
    storage.save("Aries", "en", "Cached text")
    event = FakeEvent(raw_text="/horoscope")

    asyncio.run(bot.on_horoscope(event))

    assert "Cached text" in event.responses[0][0]


def test_admin_command_is_denied_for_regular_users() -> None:
    bot, _, _, _, _ = _bot()
    event = FakeEvent(raw_text="/admin", sender_id=1)

    asyncio.run(bot.on_admin(event))

    assert event.responses[0][0] == fmt.ACCESS_DENIED


def test_admin_stats_callback() -> None:
    bot, storage, _, _, _ = _bot()
    storage.upsert(1, "Leo", "en")
    event = FakeEvent(sender_id=ADMIN, data=b"admin_stats", pattern=rb"^admin_(\w+)$")

    asyncio.run(bot.on_admin_action(event))

    assert "Total users: 1" in event.edits[0][0]


def test_admin_callbacks_are_ignored_for_regular_users() -> None:
    bot, _, _, _, _ = _bot()
    event = FakeEvent(sender_id=1, data=b"admin_stats", pattern=rb"^admin_(\w+)$")

    asyncio.run(bot.on_admin_action(event))

    assert event.answered
    assert event.edits == []


def test_broadcast_flow_by_category() -> None:
    bot, storage, _, messenger, sessions = _bot()
    storage.upsert(1, "Leo", "en")
    storage.upsert(2, "Aries", "en")

    pick = FakeEvent(sender_id=ADMIN, data=b"broadcast_zodiac_1")
    asyncio.run(bot.on_broadcast_action(pick))
    assert sessions.pending(ADMIN).audience == Audience(AUDIENCE_CATEGORY, "Leo")
    assert pick.responses[0][0] == fmt.ENTER_BROADCAST

    message = FakeEvent(sender_id=ADMIN, raw_text="Full moon tonight")
    asyncio.run(bot.on_text(message))

    assert messenger.sent == [(1, "Full moon tonight", False)]
    assert message.responses[0][0] == "Broadcast finished:\nSent: 1\nFailed: 0"
    assert sessions.pending(ADMIN) is None


def test_plain_text_without_session_gets_usage_hint() -> None:
    bot, _, _, messenger, _ = _bot()
    event = FakeEvent(sender_id=ADMIN, raw_text="hello")

    asyncio.run(bot.on_text(event))

    assert event.responses[0][0] == fmt.USE_COMMANDS
    assert messenger.sent == []
