"""SQLite storage adapter.

Implements the core StoragePort using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Optional

from core.models import MessageContext, PasteRecord


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the StoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - sources_state: per-source last_message_id for idempotency
        - pastes: append-only log of created pastes
        """

        with self._connect() as conn:
            # sources_state keeps a single counter per source so we can safely
            # restart the app without pasting old messages twice.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sources_state (
                    source_key TEXT PRIMARY KEY,
                    last_message_id INTEGER NOT NULL
                )
                """
            )
            # pastes is an append-only audit log of everything we uploaded.
            # Fields:
            # - source_key / chat_id / message_id: where the content came from
            # - sender_id: author of the pasted message
            # - url: PasteMyst link
            # - unit_count / attachment_count / codeblock_count: batch shape
            # - deleted: whether the source message was removed
            # - trigger: "auto" or "manual"
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS pastes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_key TEXT,
                    chat_id INTEGER,
                    message_id INTEGER,
                    sender_id INTEGER,
                    date TIMESTAMP,
                    url TEXT NOT NULL,
                    unit_count INTEGER,
                    attachment_count INTEGER,
                    codeblock_count INTEGER,
                    deleted INTEGER NOT NULL DEFAULT 0,
                    trigger TEXT,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )

    def get_last_id(self, source_key: str) -> Optional[int]:
        """Return the last processed message_id for a source, if any."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT last_message_id FROM sources_state WHERE source_key = ?",
                (source_key,),
            ).fetchone()
        return int(row["last_message_id"]) if row else None

    def set_last_id(self, source_key: str, last_message_id: int) -> None:
        """Upsert the last processed message_id for a source."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO sources_state (source_key, last_message_id)
                VALUES (?, ?)
                ON CONFLICT(source_key) DO UPDATE SET last_message_id = excluded.last_message_id
                """,
                (source_key, last_message_id),
            )

    def save_paste(self, context: MessageContext, record: PasteRecord) -> None:
        """Persist a created paste to the append-only pastes table."""

        created_at = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO pastes (
                    source_key,
                    chat_id,
                    message_id,
                    sender_id,
                    date,
                    url,
                    unit_count,
                    attachment_count,
                    codeblock_count,
                    deleted,
                    trigger,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    context.source_key,
                    context.chat_id,
                    context.message_id,
                    context.sender_id,
                    context.date.isoformat(),
                    record.url,
                    record.unit_count,
                    record.attachment_count,
                    record.codeblock_count,
                    int(record.deleted),
                    record.trigger,
                    created_at.isoformat(),
                ),
            )

    def list_pastes(self, source_key: Optional[str] = None, limit: int = 50) -> list[sqlite3.Row]:
        """Return the most recent pastes, newest first."""

        query = "SELECT * FROM pastes"
        params: tuple = ()
        if source_key is not None:
            query += " WHERE source_key = ?"
            params = (source_key,)
        query += " ORDER BY id DESC LIMIT ?"
        with self._connect() as conn:
            return conn.execute(query, params + (limit,)).fetchall()
