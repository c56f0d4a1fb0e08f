"""
Outbox Repositories

Durable FIFO stores behind the command outbox. The client only ever calls
add / get_first / remove_first and serializes those calls itself, so the
stores do no locking of their own.
"""

import json
import logging
import sqlite3
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, List, Optional, Protocol, runtime_checkable

from .models import Command

logger = logging.getLogger(__name__)


@runtime_checkable
class Repository(Protocol):
    """Persistent FIFO of pending commands."""

    def add(self, name: str, payload: Any) -> None:
        ...

    def get_first(self) -> Optional[Command]:
        ...

    def remove_first(self) -> None:
        ...


class InMemoryRepository:
    """Process-local queue. Not durable; for tests and throwaway clients."""

    def __init__(self):
        self._queue: Deque[Command] = deque()

    def add(self, name: str, payload: Any) -> None:
        self._queue.append(Command(name=name, payload=payload))

    def get_first(self) -> Optional[Command]:
        return self._queue[0] if self._queue else None

    def remove_first(self) -> None:
        if self._queue:
            self._queue.popleft()

    def __len__(self) -> int:
        return len(self._queue)

    def all(self) -> List[Command]:
        return list(self._queue)


class SqliteRepository:
    """
    SQLite-backed outbox queue.

    Ordering is the autoincrement id, i.e. insertion order. Payloads are
    stored as JSON text.

    Usage:
        repository = SqliteRepository("/var/lib/app/outbox.db")
        client = CommandOutboxClient(http, repository)
    """

    def __init__(self, path: str = ":memory:", table: str = "command_outbox"):
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table}")
        self._table = table
        self._conn = sqlite3.connect(path)
        self._conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                payload TEXT,
                created_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()
        logger.debug(f"Outbox repository ready: path={path} table={table}")

    def add(self, name: str, payload: Any) -> None:
        with self._conn:
            self._conn.execute(
                f"INSERT INTO {self._table} (name, payload, created_at) VALUES (?, ?, ?)",
                (name, json.dumps(payload), datetime.now(timezone.utc).isoformat())
            )

    def get_first(self) -> Optional[Command]:
        row = self._conn.execute(
            f"SELECT name, payload FROM {self._table} ORDER BY id ASC LIMIT 1"
        ).fetchone()
        if row is None:
            return None
        name, payload = row
        return Command(name=name, payload=json.loads(payload) if payload is not None else None)

    def remove_first(self) -> None:
        with self._conn:
            self._conn.execute(
                f"""
                DELETE FROM {self._table}
                WHERE id = (SELECT id FROM {self._table} ORDER BY id ASC LIMIT 1)
                """
            )

    def __len__(self) -> int:
        (count,) = self._conn.execute(f"SELECT COUNT(*) FROM {self._table}").fetchone()
        return count

    def close(self):
        self._conn.close()
