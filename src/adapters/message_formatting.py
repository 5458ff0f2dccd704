"""Shared message formatting helpers.

Keeping formatting here prevents drift between the scheduled fanout and the
interactive handlers, and keeps messages consistent. Bodies use Telethon's
Markdown flavour (``**bold**``) and are sent with ``parse_mode="md"``.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Mapping, Sequence, Tuple

from core.broadcast import BroadcastReport
from core.config import Catalog
from core.models import Subscriber
from core.stats import Overview

GENERIC_ERROR = "An error occurred. Please try again later."
NOT_REGISTERED = "You are not registered yet. Please register to receive horoscopes."
ACCESS_DENIED = "You do not have access to this command."
USE_COMMANDS = "Please use commands to interact with the bot.\nType /help to see the available commands."
WELCOME = (
    "Welcome! I am a bot that sends daily horoscopes. "
    "To receive horoscopes, please register by selecting your preferred language and zodiac sign."
)
CHOOSE_LANGUAGE = "Please select your preferred language:"
CHOOSE_CATEGORY = "Please select your zodiac sign:"
ENTER_BROADCAST = "Enter the message to broadcast:"

HELP_TEXT = "\n".join(
    [
        "Available commands:",
        "/start - Start the bot",
        "/register - Register or change your settings",
        "/profile - View your profile",
        "/horoscope - Get today's horoscope",
        "/help - Show this help",
    ]
)


def format_day(day: date) -> str:
    return day.strftime("%d.%m.%Y")


def format_content_message(category: str, language: str, text: str, day: date) -> str:
    """Return the horoscope body used by the fanout and the on-demand replies."""

    return f"🌟 **Horoscope for {category} on {format_day(day)}** 🌟\n\n{text}"


def format_registration(category: str, language_label: str, created: bool) -> str:
    heading = "You have successfully registered:" if created else "Your profile has been updated:"
    return f"{heading}\nZodiac sign: {category}\nLanguage: {language_label}"


def format_profile(subscriber: Subscriber, catalog: Catalog) -> str:
    registered = subscriber.registered_at.astimezone().date()
    return "\n".join(
        [
            "Your profile:",
            f"Zodiac sign: {subscriber.category}",
            f"Language: {catalog.language_label(subscriber.language)}",
            f"Registration date: {format_day(registered)}",
        ]
    )


def format_overview(stats: Overview) -> str:
    return "\n".join(
        [
            "📊 **Overall statistics**",
            "",
            f"Total users: {stats.total}",
            f"New users today: {stats.new_today}",
        ]
    )


def format_today_users(subscribers: Sequence[Subscriber], catalog: Catalog) -> str:
    lines = ["👥 **Users registered today**", ""]
    if not subscribers:
        lines.append("No registrations yet.")
    for subscriber in subscribers:
        registered: datetime = subscriber.registered_at.astimezone()
        lines.extend(
            [
                f"ID: {subscriber.chat_id}",
                f"Sign: {subscriber.category}",
                f"Language: {catalog.language_label(subscriber.language)}",
                f"Time: {registered.strftime('%H:%M:%S')}",
                "",
            ]
        )
    return "\n".join(lines).rstrip()


def format_language_stats(counts: Mapping[str, int], catalog: Catalog) -> str:
    lines = ["🌍 **Users by language**", ""]
    lines.extend(f"{catalog.language_label(code)}: {total}" for code, total in counts.items())
    return "\n".join(lines)


def format_category_stats(counts: Mapping[str, int]) -> str:
    lines = ["⭐ **Users by zodiac sign**", ""]
    lines.extend(f"{category}: {total}" for category, total in counts.items())
    return "\n".join(lines)


def format_registrations_by_day(rows: Iterable[Tuple[str, int]], days: int) -> str:
    lines = [f"📈 **Registrations over the last {days} days**", ""]
    lines.extend(f"{day}: {total} users" for day, total in rows)
    return "\n".join(lines)


def format_broadcast_report(report: BroadcastReport) -> str:
    return f"Broadcast finished:\nSent: {report.sent}\nFailed: {report.failed}"
