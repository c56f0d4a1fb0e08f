"""
Event Stream Consumption

Polls the server's linked event chain and delivers events in order,
resuming from a persisted position.

Usage:
    from cqrs_sync.core.events import EventStreamPoller, SqlitePositionStore

    poller = EventStreamPoller("/events", on_event, http,
                               position_store=SqlitePositionStore("sync.db"))
"""

from .models import (
    EventResource,
    StreamProtocol,
    LINKED_PROTOCOL,
    REDIRECT_PROTOCOL,
    get_protocol,
)
from .position import (
    PositionStore,
    NullPositionStore,
    MemoryPositionStore,
    SqlitePositionStore,
)
from .poller import EventStreamPoller, PollResult

__all__ = [
    "EventResource",
    "StreamProtocol",
    "LINKED_PROTOCOL",
    "REDIRECT_PROTOCOL",
    "get_protocol",
    "PositionStore",
    "NullPositionStore",
    "MemoryPositionStore",
    "SqlitePositionStore",
    "EventStreamPoller",
    "PollResult",
]
