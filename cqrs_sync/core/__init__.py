"""
cqrs-sync Core Package

Reliable synchronization core: command outbox, event stream poller and the
dispatch, backoff and platform primitives they share.
"""

from . import dispatch
from . import outbox
from . import events

__all__ = ["dispatch", "outbox", "events"]
