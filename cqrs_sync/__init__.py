"""
cqrs-sync

Client-side synchronization for CQRS-style HTTP APIs: commands out through a
durable outbox, events in through a resumable stream poller.
"""

__version__ = "1.0.0"
