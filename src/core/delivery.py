"""Per-recipient delivery with failure isolation."""

from __future__ import annotations

import logging

from core.ports import MessengerPort

LOGGER = logging.getLogger(__name__)


class DeliverySender:
    """Send one message to one chat; report failures instead of raising."""

    def __init__(self, messenger: MessengerPort) -> None:
        self._messenger = messenger

    async def send(self, chat_id: int, text: str, markup: bool = True) -> bool:
        try:
            await self._messenger.send_message(chat_id, text, markup=markup)
        except Exception:
            LOGGER.exception("Delivery to %s failed", chat_id)
            return False
        LOGGER.info("Message delivered to %s", chat_id)
        return True
