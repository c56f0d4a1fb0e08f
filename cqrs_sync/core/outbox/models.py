"""
Outbox Models
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class OutboxState(str, Enum):
    """Flush-loop state of a command outbox client."""
    IDLE = "idle"
    FLUSHING = "flushing"  # flush armed or POST in flight
    BACKOFF = "backoff"    # waiting out a retry delay
    FAILED = "failed"      # unexpected response, no further flushes


class Command(BaseModel):
    """A command queued for delivery. Immutable once submitted."""

    name: str
    payload: Any = None

    class Config:
        frozen = True
