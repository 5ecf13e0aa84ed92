"""SQLite-backed local state.

Holds the cached message collection (so the inbox survives a restart) and the
small key/value state of the incremental loader.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import structlog

from commsync.models import Message

logger = structlog.get_logger()


_SCHEMA_VERSION = 1


class StateRepository:
    """Repository for persisted messages and loader state."""

    def __init__(self, db_path: Path) -> None:
        """Create a repository.

        Args:
            db_path: Path to the SQLite database file.
        """

        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Create or verify the schema."""

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS _schema_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )

            current_version = self._get_schema_version(conn)
            if current_version is None:
                self._create_schema_v1(conn)
                self._set_schema_version(conn, _SCHEMA_VERSION)
                conn.commit()
                logger.info("state_schema_created", version=_SCHEMA_VERSION)
                return

            if current_version != _SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {current_version}; expected {_SCHEMA_VERSION}"
                )

    def upsert_messages(self, messages: Iterable[Message]) -> int:
        """Insert or replace messages by store key.

        Returns:
            Number of rows written.
        """

        rows = [
            {
                "channel": m.store_key[0],
                "account_id": m.store_key[1],
                "message_id": m.store_key[2],
                "timestamp_iso": m.timestamp.isoformat(),
                "payload_json": m.model_dump_json(),
            }
            for m in messages
        ]
        if not rows:
            return 0

        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO messages (channel, account_id, message_id, timestamp_iso, payload_json)
                VALUES (:channel, :account_id, :message_id, :timestamp_iso, :payload_json)
                ON CONFLICT(channel, account_id, message_id) DO UPDATE SET
                    timestamp_iso=excluded.timestamp_iso,
                    payload_json=excluded.payload_json
                """,
                rows,
            )
            conn.commit()

        return len(rows)

    def load_messages(self) -> list[Message]:
        """Load every cached message in insertion order.

        Rows that no longer validate are skipped and logged.
        """

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT channel, account_id, message_id, payload_json FROM messages ORDER BY rowid"
            ).fetchall()

        messages: list[Message] = []
        for row in rows:
            try:
                messages.append(Message.model_validate_json(row["payload_json"]))
            except ValueError as exc:
                logger.warning(
                    "state_message_unreadable",
                    channel=row["channel"],
                    message_id=row["message_id"],
                    error=str(exc),
                )
        return messages

    def count_messages(self) -> int:
        with self._connect() as conn:
            (total,) = conn.execute("SELECT COUNT(*) FROM messages").fetchone()
        return int(total or 0)

    def get_value(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM loader_state WHERE key = ?", (key,)).fetchone()
        return None if row is None else str(row[0])

    def set_value(self, key: str, value: str) -> None:
        now_iso = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO loader_state (key, value, updated_at_iso)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at_iso=excluded.updated_at_iso
                """,
                (key, value, now_iso),
            )
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        try:
            conn.row_factory = sqlite3.Row
            yield conn
        finally:
            conn.close()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int | None:
        row = conn.execute(
            "SELECT value FROM _schema_meta WHERE key = 'schema_version'"
        ).fetchone()
        if row is None:
            return None
        return int(row[0])

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO _schema_meta(key, value) VALUES('schema_version', ?) ",
            (str(version),),
        )

    def _create_schema_v1(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS messages (
                rowid INTEGER PRIMARY KEY,
                channel TEXT NOT NULL,
                account_id TEXT NOT NULL,
                message_id TEXT NOT NULL,
                timestamp_iso TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                UNIQUE(channel, account_id, message_id)
            );

            CREATE INDEX IF NOT EXISTS idx_messages_timestamp
                ON messages(timestamp_iso);

            CREATE TABLE IF NOT EXISTS loader_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at_iso TEXT NOT NULL
            );
            """
        )
