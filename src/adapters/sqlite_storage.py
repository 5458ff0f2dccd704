"""SQLite storage adapter.

Implements the core ContentStorePort and SubscriberDirectoryPort using a
simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Optional

from core.clock import start_of_local_day
from core.models import ContentRecord, Subscriber


def _to_db(value: datetime) -> str:
    # UTC ISO strings share one offset, so they sort and compare as text.
    return value.astimezone(timezone.utc).isoformat()


def _from_db(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _subscriber(row: sqlite3.Row) -> Subscriber:
    return Subscriber(
        chat_id=int(row["chat_id"]),
        category=row["category"],
        language=row["language"],
        registered_at=_from_db(row["registered_at"]),
    )


def _content(row: sqlite3.Row) -> ContentRecord:
    return ContentRecord(
        id=int(row["id"]),
        category=row["category"],
        language=row["language"],
        text=row["text"],
        created_at=_from_db(row["created_at"]),
    )


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies both storage port contracts."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - subscribers: one row per chat with its sign and language
        - content_records: append-only log of generated horoscopes
        """

        with self._connect() as conn:
            # Fields:
            # - chat_id: Telegram chat id (PRIMARY KEY, enforces one row per chat)
            # - category: zodiac sign as listed in the catalog
            # - language: language code as listed in the catalog
            # - registered_at: first registration time, never updated
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS subscribers (
                    chat_id INTEGER PRIMARY KEY,
                    category TEXT NOT NULL,
                    language TEXT NOT NULL,
                    registered_at TIMESTAMP NOT NULL
                )
                """
            )
            # No uniqueness on (category, language, day): repeated generation
            # appends duplicates and lookups pick the newest one.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS content_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    category TEXT NOT NULL,
                    language TEXT NOT NULL,
                    text TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_content_lookup
                ON content_records (category, language, created_at)
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_subscribers_pref
                ON subscribers (category, language)
                """
            )

    # Content store

    def find_today(self, category: str, language: str, now: Optional[datetime] = None) -> Optional[ContentRecord]:
        """Return the newest record created since local midnight, if any."""

        since = start_of_local_day(now)
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT id, category, language, text, created_at
                FROM content_records
                WHERE category = ? AND language = ? AND created_at >= ?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (category, language, _to_db(since)),
            ).fetchone()
        return _content(row) if row else None

    def save(
        self,
        category: str,
        language: str,
        text: str,
        created_at: Optional[datetime] = None,
    ) -> ContentRecord:
        """Append a generated horoscope."""

        created_at = created_at or datetime.now(timezone.utc)
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO content_records (category, language, text, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (category, language, text, _to_db(created_at)),
            )
            record_id = cur.lastrowid
        return ContentRecord(
            id=record_id,
            category=category,
            language=language,
            text=text,
            created_at=created_at.astimezone(timezone.utc),
        )

    def count_content(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM content_records").fetchone()
        return int(row["total"])

    # Subscriber directory

    def upsert(
        self,
        chat_id: int,
        category: str,
        language: str,
        registered_at: Optional[datetime] = None,
    ) -> Subscriber:
        """Insert a subscriber or update its preferences.

        registered_at is only written on insert.
        """

        registered_at = registered_at or datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO subscribers (chat_id, category, language, registered_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(chat_id) DO UPDATE SET
                    category = excluded.category,
                    language = excluded.language
                """,
                (chat_id, category, language, _to_db(registered_at)),
            )
            row = conn.execute(
                "SELECT chat_id, category, language, registered_at FROM subscribers WHERE chat_id = ?",
                (chat_id,),
            ).fetchone()
        return _subscriber(row)

    def find_one(self, chat_id: int) -> Optional[Subscriber]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT chat_id, category, language, registered_at FROM subscribers WHERE chat_id = ?",
                (chat_id,),
            ).fetchone()
        return _subscriber(row) if row else None

    def _select(self, where: str = "", params: tuple = ()) -> list[Subscriber]:
        query = "SELECT chat_id, category, language, registered_at FROM subscribers"
        if where:
            query = f"{query} WHERE {where}"
        query = f"{query} ORDER BY registered_at, chat_id"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_subscriber(row) for row in rows]

    def find_by_category_and_language(self, category: str, language: str) -> list[Subscriber]:
        return self._select("category = ? AND language = ?", (category, language))

    def find_all(self) -> list[Subscriber]:
        return self._select()

    def find_by_language(self, language: str) -> list[Subscriber]:
        return self._select("language = ?", (language,))

    def find_by_category(self, category: str) -> list[Subscriber]:
        return self._select("category = ?", (category,))

    def list_registered_since(self, since: datetime) -> list[Subscriber]:
        return self._select("registered_at >= ?", (_to_db(since),))

    def count_subscribers(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM subscribers").fetchone()
        return int(row["total"])

    def count_registered_since(self, since: datetime) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM subscribers WHERE registered_at >= ?",
                (_to_db(since),),
            ).fetchone()
        return int(row["total"])

    def _count_by(self, column: str) -> dict[str, int]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {column} AS value, COUNT(*) AS total FROM subscribers GROUP BY {column} ORDER BY {column}"
            ).fetchall()
        return {row["value"]: int(row["total"]) for row in rows}

    def count_by_language(self) -> dict[str, int]:
        return self._count_by("language")

    def count_by_category(self) -> dict[str, int]:
        return self._count_by("category")
