"""
Backoff Policies

Pure delay transforms plus observer hooks. Delays are milliseconds.

The increase functions decide how long to wait before the next attempt;
the callbacks are telemetry only. Components invoke callbacks through the
platform's zero-delay scheduling and never look at their return value.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# Additive increases applied per consecutive failure
DEFAULT_SERVER_ERROR_STEP_MS = 5000
DEFAULT_CLIENT_ERROR_STEP_MS = 10000

# Constant interval between polls while waiting for new events
DEFAULT_POLL_INTERVAL_MS = 500


def additive(step_ms: int) -> Callable[[int], int]:
    """Delay transform adding a fixed step on every failure."""
    def increase(delay: int) -> int:
        return delay + step_ms
    return increase


def constant(interval_ms: int) -> Callable[[int], int]:
    """Delay transform ignoring the current delay."""
    def increase(delay: int) -> int:
        return interval_ms
    return increase


def _noop(*args: Any) -> None:
    return None


def _log_server_error(uri: str, err: Optional[BaseException], delay: int) -> None:
    logger.warning(f"Server error polling {uri}, waiting {delay}ms")


def _log_client_error(uri: str, err: Optional[BaseException], delay: int) -> None:
    logger.warning(f"Client error polling {uri}, waiting {delay}ms: {err}")


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Retry policy for the command outbox.

    Hooks receive the delay about to be waited.
    """
    server_error_increase: Callable[[int], int] = field(
        default_factory=lambda: additive(DEFAULT_SERVER_ERROR_STEP_MS)
    )
    client_error_increase: Callable[[int], int] = field(
        default_factory=lambda: additive(DEFAULT_CLIENT_ERROR_STEP_MS)
    )
    server_error_callback: Callable[[int], None] = _noop
    client_error_callback: Callable[[int], None] = _noop
    initial_delay: int = 0


@dataclass(frozen=True)
class PollingBackoffPolicy:
    """
    Retry and polling policy for the event stream poller.

    Error hooks receive (uri, err, delay); the waiting hook receives
    (uri, delay).
    """
    server_error_increase: Callable[[int], int] = field(
        default_factory=lambda: additive(DEFAULT_SERVER_ERROR_STEP_MS)
    )
    client_error_increase: Callable[[int], int] = field(
        default_factory=lambda: additive(DEFAULT_CLIENT_ERROR_STEP_MS)
    )
    waiting_increase: Callable[[int], int] = field(
        default_factory=lambda: constant(DEFAULT_POLL_INTERVAL_MS)
    )
    server_error_callback: Callable[[str, Optional[BaseException], int], None] = _log_server_error
    client_error_callback: Callable[[str, Optional[BaseException], int], None] = _log_client_error
    waiting_callback: Callable[[str, int], None] = _noop
