"""
Command Outbox

Durable, strictly ordered command delivery with retry and backoff.

Usage:
    from cqrs_sync.core.outbox import CommandOutboxClient, SqliteRepository

    client = CommandOutboxClient(http, SqliteRepository("outbox.db"))
    client.submit("add_item", {"sku": "A-1"})
"""

from .client import CommandOutboxClient
from .models import Command, OutboxState
from .repository import Repository, InMemoryRepository, SqliteRepository

__all__ = [
    "CommandOutboxClient",
    "Command",
    "OutboxState",
    "Repository",
    "InMemoryRepository",
    "SqliteRepository",
]
