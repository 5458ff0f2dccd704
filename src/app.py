"""Application entry point for the zodiacast bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from art import tprint
from dotenv import load_dotenv

import settings
from adapters.message_formatting import format_content_message
from adapters.openai_backend import OpenAICompletionBackend
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_bot import TelegramBot
from adapters.telegram_messenger import TelegramMessenger
from client import admin_id, bot_token, build_client, build_openai_client
from core.broadcast import Broadcaster, BroadcastSessions
from core.delivery import DeliverySender
from core.fanout import FanoutJob
from core.generator import ContentGenerator
from core.registration import RegistrationService
from core.resolver import OnDemandResolver

NAME = "ZODIACAST"
FONT = "tarty-1"

FANOUT_JOB_ID = "daily_fanout"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/zodiacast.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # Telethon is chatty at INFO; keep our own records readable.
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))


@dataclass
class _Services:
    storage: SQLiteStorage
    resolver: OnDemandResolver
    fanout: FanoutJob
    registration: RegistrationService
    broadcaster: Broadcaster


def _build_services(client) -> _Services:
    """Wire adapters into the core services."""

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()

    backend = OpenAICompletionBackend(build_openai_client(), settings.GENERATION.model)
    generator = ContentGenerator(backend, settings.CATALOG, settings.GENERATION)
    sender = DeliverySender(TelegramMessenger(client))
    persist_fallback = settings.GENERATION.persist_fallback

    resolver = OnDemandResolver(storage, generator, persist_fallback=persist_fallback)
    fanout = FanoutJob(
        catalog=settings.CATALOG,
        generator=generator,
        store=storage,
        directory=storage,
        sender=sender,
        format_message=format_content_message,
        persist_fallback=persist_fallback,
    )
    return _Services(
        storage=storage,
        resolver=resolver,
        fanout=fanout,
        registration=RegistrationService(settings.CATALOG, storage, resolver),
        broadcaster=Broadcaster(storage, sender),
    )


def _build_scheduler(fanout: FanoutJob) -> AsyncIOScheduler:
    options = {}
    if settings.SCHEDULE_TIMEZONE:
        options["timezone"] = settings.SCHEDULE_TIMEZONE
    scheduler = AsyncIOScheduler(**options)
    scheduler.add_job(
        fanout.run,
        CronTrigger.from_crontab(settings.FANOUT_CRON, **options),
        id=FANOUT_JOB_ID,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=3600,
    )
    return scheduler


async def _serve() -> None:
    logger = logging.getLogger(__name__)
    client = build_client()
    services = _build_services(client)

    bot = TelegramBot(
        catalog=settings.CATALOG,
        registration=services.registration,
        directory=services.storage,
        broadcaster=services.broadcaster,
        sessions=BroadcastSessions(),
        admin_id=admin_id(),
    )
    bot.attach(client)

    await client.start(bot_token=bot_token())
    logger.info("Bot connected")

    # The scheduler shares the client's event loop, so fanout and handlers
    # interleave cooperatively.
    scheduler = _build_scheduler(services.fanout)
    scheduler.start()
    logger.info("Daily fanout scheduled with cron '%s'", settings.FANOUT_CRON)

    try:
        await client.run_until_disconnected()
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Bot stopped")


async def _fanout_once() -> None:
    client = build_client()
    services = _build_services(client)
    await client.start(bot_token=bot_token())
    try:
        await services.fanout.run()
    finally:
        await client.disconnect()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logging.getLogger(__name__).info("Starting zodiacast")
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Interrupted, shutting down")


def _fanout() -> None:
    _configure_logging()
    asyncio.run(_fanout_once())


def _init_db() -> None:
    _configure_logging()
    SQLiteStorage(settings.DB_PATH).init_db()
    logging.getLogger(__name__).info("Database initialized at %s", settings.DB_PATH)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="zodiacast")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot and the daily scheduler")
    subparsers.add_parser("fanout", help="Generate and deliver today's horoscopes once, then exit")
    subparsers.add_parser("init-db", help="Create the SQLite tables")

    args = parser.parse_args(argv)
    if args.command == "fanout":
        _fanout()
        return
    if args.command == "init-db":
        _init_db()
        return
    _run()


if __name__ == "__main__":
    main()
