"""Telegram command and callback handlers.

This keeps Telethon-specific details (events, inline buttons, callback data)
out of the core services. Every handler answers interactive failures with a
generic error message and logs the exception.
"""

from __future__ import annotations

import functools
import logging
import re
from typing import Awaitable, Callable, Optional

from telethon import Button, events

from adapters import message_formatting as fmt
from core import stats
from core.broadcast import (
    AUDIENCE_ALL,
    AUDIENCE_CATEGORY,
    AUDIENCE_LANGUAGE,
    Audience,
    Broadcaster,
    BroadcastSessions,
)
from core.clock import local_day
from core.config import Catalog
from core.ports import SubscriberDirectoryPort
from core.registration import RegistrationService

LOGGER = logging.getLogger(__name__)

REGISTRATION_GRAPH_DAYS = 7


def _command(name: str) -> re.Pattern:
    # Accept "/cmd" and "/cmd@botname" in groups.
    return re.compile(rf"^/{name}(?:@\w+)?(?:\s|$)")


def _guarded(handler: Callable[..., Awaitable[None]]) -> Callable[..., Awaitable[None]]:
    @functools.wraps(handler)
    async def wrapper(self: "TelegramBot", event) -> None:
        try:
            await handler(self, event)
        except Exception:
            LOGGER.exception("Error while handling %s", handler.__name__)
            await event.respond(fmt.GENERIC_ERROR)

    return wrapper


class TelegramBot:
    """Binds core services to Telethon events."""

    def __init__(
        self,
        catalog: Catalog,
        registration: RegistrationService,
        directory: SubscriberDirectoryPort,
        broadcaster: Broadcaster,
        sessions: BroadcastSessions,
        admin_id: Optional[int],
    ) -> None:
        self._catalog = catalog
        self._registration = registration
        self._directory = directory
        self._broadcaster = broadcaster
        self._sessions = sessions
        self._admin_id = admin_id

    def is_admin(self, sender_id: Optional[int]) -> bool:
        return self._admin_id is not None and sender_id == self._admin_id

    # Keyboards

    def register_button(self, label: str = "Register") -> list:
        return [[Button.inline(label, b"register")]]

    def language_keyboard(self, prefix: str) -> list:
        return [
            [Button.inline(language.label, f"{prefix}{language.code}".encode())]
            for language in self._catalog.languages
        ]

    def category_keyboard(self, prefix: str) -> list:
        # Category index keeps callback data ASCII and well under 64 bytes.
        return [
            [Button.inline(category, f"{prefix}{index}".encode())]
            for index, category in enumerate(self._catalog.categories)
        ]

    def admin_keyboard(self) -> list:
        return [
            [Button.inline("📊 Overall statistics", b"admin_stats")],
            [Button.inline("👥 Users today", b"admin_today")],
            [Button.inline("🌍 Users by language", b"admin_languages")],
            [Button.inline("⭐ Users by sign", b"admin_zodiac")],
            [Button.inline("📈 Registrations chart", b"admin_graph")],
            [Button.inline("📨 Broadcast", b"admin_broadcast")],
        ]

    def _category_at(self, raw_index: bytes) -> str:
        index = int(raw_index)
        if not 0 <= index < len(self._catalog.categories):
            raise ValueError(f"Unknown category index: {index}")
        return self._catalog.categories[index]

    # User commands

    @_guarded
    async def on_start(self, event) -> None:
        await event.respond(fmt.WELCOME, buttons=self.register_button())

    @_guarded
    async def on_register_command(self, event) -> None:
        await event.respond(fmt.CHOOSE_LANGUAGE, buttons=self.language_keyboard("lang_"))

    @_guarded
    async def on_register_button(self, event) -> None:
        await event.edit(fmt.CHOOSE_LANGUAGE, buttons=self.language_keyboard("lang_"))

    @_guarded
    async def on_language_chosen(self, event) -> None:
        code = event.data_match.group(1).decode()
        if not self._catalog.has_language(code):
            raise ValueError(f"Unknown language: {code}")
        await event.edit(fmt.CHOOSE_CATEGORY, buttons=self.category_keyboard(f"zodiac_{code}_"))

    @_guarded
    async def on_category_chosen(self, event) -> None:
        code = event.data_match.group(1).decode()
        category = self._category_at(event.data_match.group(2))
        outcome = await self._registration.register(event.chat_id, category, code)
        await event.edit(
            fmt.format_registration(category, self._catalog.language_label(code), outcome.created)
        )
        await event.respond(
            fmt.format_content_message(category, code, outcome.text, local_day()),
            parse_mode="md",
        )

    @_guarded
    async def on_profile(self, event) -> None:
        subscriber = self._registration.profile(event.chat_id)
        if subscriber is None:
            await event.respond(fmt.NOT_REGISTERED, buttons=self.register_button())
            return
        await event.respond(
            fmt.format_profile(subscriber, self._catalog),
            buttons=self.register_button("Change settings"),
        )

    @_guarded
    async def on_horoscope(self, event) -> None:
        resolved = await self._registration.todays_content(event.chat_id)
        if resolved is None:
            await event.respond(fmt.NOT_REGISTERED, buttons=self.register_button())
            return
        subscriber, text = resolved
        await event.respond(
            fmt.format_content_message(subscriber.category, subscriber.language, text, local_day()),
            parse_mode="md",
        )

    @_guarded
    async def on_help(self, event) -> None:
        await event.respond(fmt.HELP_TEXT)

    @_guarded
    async def on_text(self, event) -> None:
        """Plain text: either an operator's broadcast body or a usage hint."""

        text = event.raw_text or ""
        if text.startswith("/"):
            return
        if self.is_admin(event.sender_id):
            session = self._sessions.consume(event.sender_id)
            if session is not None:
                report = await self._broadcaster.broadcast(session.audience, text)
                await event.respond(fmt.format_broadcast_report(report))
                return
        await event.respond(fmt.USE_COMMANDS)

    # Administrator surface

    @_guarded
    async def on_admin(self, event) -> None:
        if not self.is_admin(event.sender_id):
            await event.respond(fmt.ACCESS_DENIED)
            return
        await event.respond("Admin panel:", buttons=self.admin_keyboard())

    @_guarded
    async def on_admin_action(self, event) -> None:
        if not self.is_admin(event.sender_id):
            await event.answer()
            return

        action = event.data_match.group(1).decode()
        if action == "stats":
            body = fmt.format_overview(stats.overview(self._directory))
        elif action == "today":
            body = fmt.format_today_users(stats.new_today(self._directory), self._catalog)
        elif action == "languages":
            body = fmt.format_language_stats(self._directory.count_by_language(), self._catalog)
        elif action == "zodiac":
            body = fmt.format_category_stats(self._directory.count_by_category())
        elif action == "graph":
            rows = stats.registrations_by_day(self._directory, days=REGISTRATION_GRAPH_DAYS)
            body = fmt.format_registrations_by_day(rows, REGISTRATION_GRAPH_DAYS)
        elif action == "broadcast":
            await event.edit(
                "Choose the broadcast audience:",
                buttons=[
                    [Button.inline("📨 All users", b"broadcast_all")],
                    [Button.inline("🌍 By language", b"broadcast_language")],
                    [Button.inline("⭐ By zodiac sign", b"broadcast_zodiac")],
                ],
            )
            return
        else:
            raise ValueError(f"Unknown admin action: {action}")
        await event.edit(body, parse_mode="md")

    @_guarded
    async def on_broadcast_action(self, event) -> None:
        if not self.is_admin(event.sender_id):
            await event.answer()
            return

        data = event.data
        if data == b"broadcast_all":
            self._sessions.start(event.sender_id, Audience(AUDIENCE_ALL))
        elif data == b"broadcast_language":
            await event.edit("Choose the language:", buttons=self.language_keyboard("broadcast_lang_"))
            return
        elif data == b"broadcast_zodiac":
            await event.edit("Choose the zodiac sign:", buttons=self.category_keyboard("broadcast_zodiac_"))
            return
        elif data.startswith(b"broadcast_lang_"):
            code = data[len(b"broadcast_lang_"):].decode()
            if not self._catalog.has_language(code):
                raise ValueError(f"Unknown language: {code}")
            self._sessions.start(event.sender_id, Audience(AUDIENCE_LANGUAGE, code))
        elif data.startswith(b"broadcast_zodiac_"):
            category = self._category_at(data[len(b"broadcast_zodiac_"):])
            self._sessions.start(event.sender_id, Audience(AUDIENCE_CATEGORY, category))
        else:
            raise ValueError(f"Unknown broadcast action: {data!r}")
        await event.respond(fmt.ENTER_BROADCAST)

    def attach(self, client) -> None:
        """Register every handler on a Telethon client."""

        handlers = [
            (self.on_start, events.NewMessage(incoming=True, pattern=_command("start"))),
            (self.on_register_command, events.NewMessage(incoming=True, pattern=_command("register"))),
            (self.on_profile, events.NewMessage(incoming=True, pattern=_command("profile"))),
            (self.on_horoscope, events.NewMessage(incoming=True, pattern=_command("horoscope"))),
            (self.on_help, events.NewMessage(incoming=True, pattern=_command("help"))),
            (self.on_admin, events.NewMessage(incoming=True, pattern=_command("admin"))),
            (self.on_text, events.NewMessage(incoming=True, func=lambda e: not (e.raw_text or "").startswith("/"))),
            (self.on_register_button, events.CallbackQuery(data=b"register")),
            (self.on_language_chosen, events.CallbackQuery(data=re.compile(rb"^lang_(\w+)$"))),
            (self.on_category_chosen, events.CallbackQuery(data=re.compile(rb"^zodiac_(\w+?)_(\d+)$"))),
            (self.on_admin_action, events.CallbackQuery(data=re.compile(rb"^admin_(\w+)$"))),
            (self.on_broadcast_action, events.CallbackQuery(data=re.compile(rb"^broadcast_"))),
        ]
        for callback, event in handlers:
            client.add_event_handler(callback, event)
        LOGGER.info("%s bot handlers registered", len(handlers))
