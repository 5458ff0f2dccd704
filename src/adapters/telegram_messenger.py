"""Telegram delivery adapter.

Sends messages through the bot's Telethon client.
"""

from __future__ import annotations


class TelegramMessenger:
    """Messenger adapter that satisfies the core MessengerPort."""

    def __init__(self, client) -> None:
        self._client = client

    async def send_message(self, chat_id: int, text: str, markup: bool = True) -> None:
        """Send text to a chat; Markdown is parsed only when markup is set."""

        parse_mode = "md" if markup else None
        await self._client.send_message(chat_id, text, parse_mode=parse_mode)
