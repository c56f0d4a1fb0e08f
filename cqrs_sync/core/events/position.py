"""
Event Stream Position Stores

Remember the last URI the poller transitioned to, so a restarted process
resumes there instead of at the stream origin.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Awaitable, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class PositionStore(Protocol):
    """
    Either method may be a coroutine function; the poller awaits the
    result on the running loop before acting on it.
    """

    def transitioned_to(self, uri: str) -> Union[None, Awaitable[None]]:
        ...

    def latest(self) -> Union[Optional[str], Awaitable[Optional[str]]]:
        ...


class NullPositionStore:
    """Remembers nothing; the poller always starts from its initial URI."""

    def transitioned_to(self, uri: str) -> None:
        return None

    def latest(self) -> Optional[str]:
        return None


class MemoryPositionStore:
    """Process-local position, optionally seeded."""

    def __init__(self, latest: Optional[str] = None):
        self._latest = latest

    def transitioned_to(self, uri: str) -> None:
        self._latest = uri

    def latest(self) -> Optional[str]:
        return self._latest


class SqlitePositionStore:
    """
    SQLite-backed position, one row per named stream.

    Usage:
        store = SqlitePositionStore("/var/lib/app/sync.db", stream="orders")
        poller = EventStreamPoller("/events", on_event, http, position_store=store)
    """

    def __init__(self, path: str = ":memory:", stream: str = "default"):
        self._stream = stream
        self._conn = sqlite3.connect(path)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS stream_position (
                stream TEXT PRIMARY KEY,
                uri TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def transitioned_to(self, uri: str) -> None:
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO stream_position (stream, uri, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(stream) DO UPDATE SET uri = excluded.uri, updated_at = excluded.updated_at
                """,
                (self._stream, uri, datetime.now(timezone.utc).isoformat())
            )
        logger.debug(f"Stream {self._stream} transitioned to {uri}")

    def latest(self) -> Optional[str]:
        row = self._conn.execute(
            "SELECT uri FROM stream_position WHERE stream = ?",
            (self._stream,)
        ).fetchone()
        return row[0] if row else None

    def close(self):
        self._conn.close()
