"""
Sync Client Configuration

Centralized settings read from the environment (and a .env file, if any).
"""

import os
from typing import List

from dotenv import load_dotenv

from .backoff import (
    BackoffPolicy,
    DEFAULT_CLIENT_ERROR_STEP_MS,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_SERVER_ERROR_STEP_MS,
    PollingBackoffPolicy,
    additive,
    constant,
)
from .events.models import PROTOCOLS, StreamProtocol, get_protocol

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class SyncConfig:
    """Configuration for the command outbox and event stream clients."""

    def __init__(self):
        # Server
        self.base_url = os.getenv("SYNC_BASE_URL", "http://localhost:8080")
        self.events_uri = os.getenv("SYNC_EVENTS_URI", "/events")
        self.commands_prefix = os.getenv("SYNC_COMMANDS_PREFIX", "/commands/")
        self.stream_protocol_name = os.getenv("SYNC_STREAM_PROTOCOL", "linked").lower()
        self.http_timeout = float(os.getenv("SYNC_HTTP_TIMEOUT", "30"))

        # Local state
        self.db_path = os.getenv("SYNC_DB_PATH", "cqrs_sync.db")
        self.stream_name = os.getenv("SYNC_STREAM_NAME", "default")

        # Backoff (milliseconds)
        self.server_backoff_ms = int(os.getenv("SYNC_SERVER_BACKOFF_MS", str(DEFAULT_SERVER_ERROR_STEP_MS)))
        self.client_backoff_ms = int(os.getenv("SYNC_CLIENT_BACKOFF_MS", str(DEFAULT_CLIENT_ERROR_STEP_MS)))
        self.poll_interval_ms = int(os.getenv("SYNC_POLL_INTERVAL_MS", str(DEFAULT_POLL_INTERVAL_MS)))

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_structured = _env_bool("LOG_STRUCTURED", "true")

    @property
    def stream_protocol(self) -> StreamProtocol:
        return get_protocol(self.stream_protocol_name)

    def outbox_backoff(self) -> BackoffPolicy:
        return BackoffPolicy(
            server_error_increase=additive(self.server_backoff_ms),
            client_error_increase=additive(self.client_backoff_ms),
        )

    def polling_backoff(self) -> PollingBackoffPolicy:
        return PollingBackoffPolicy(
            server_error_increase=additive(self.server_backoff_ms),
            client_error_increase=additive(self.client_backoff_ms),
            waiting_increase=constant(self.poll_interval_ms),
        )

    def validate(self) -> List[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.base_url.startswith(("http://", "https://")):
            issues.append(f"ERROR: SYNC_BASE_URL must be an http(s) URL, got {self.base_url!r}")

        if self.stream_protocol_name not in PROTOCOLS:
            issues.append(
                f"ERROR: SYNC_STREAM_PROTOCOL must be one of {', '.join(sorted(PROTOCOLS))}, "
                f"got {self.stream_protocol_name!r}"
            )

        for name in ("server_backoff_ms", "client_backoff_ms", "poll_interval_ms"):
            if getattr(self, name) < 0:
                issues.append(f"ERROR: {name} must not be negative")

        if self.http_timeout <= 0:
            issues.append("ERROR: SYNC_HTTP_TIMEOUT must be positive")

        if self.base_url.startswith("http://") and "localhost" not in self.base_url:
            issues.append("WARNING: SYNC_BASE_URL is not HTTPS")

        return issues

    def __repr__(self) -> str:
        return (
            f"SyncConfig(base_url={self.base_url}, events_uri={self.events_uri}, "
            f"protocol={self.stream_protocol_name}, db_path={self.db_path})"
        )
