"""
Event Stream Runner

Tails the configured event stream and logs every event. Useful as a
smoke test against a live server and as a template for real consumers.

Usage:
    python -m cqrs_sync.core.events.runner

Environment Variables:
    SYNC_BASE_URL: Server base URL (default: http://localhost:8080)
    SYNC_EVENTS_URI: Stream origin (default: /events)
    SYNC_STREAM_PROTOCOL: linked | redirect (default: linked)
    SYNC_DB_PATH: SQLite file holding the stream position
    LOG_LEVEL: Logging level (default: INFO)
"""

import asyncio
import logging
import signal
import sys
from typing import Any, Optional

from ..config import SyncConfig
from ..http import HttpxHttpClient
from ..observability import configure_logging, init_metrics
from ..platform import AsyncioPlatform
from .poller import EventStreamPoller
from .position import SqlitePositionStore

logger = logging.getLogger(__name__)


class EventStreamRunner:
    """
    Manages an event stream poller with graceful shutdown.
    """

    def __init__(self, config: Optional[SyncConfig] = None):
        self.config = config or SyncConfig()
        self.poller: Optional[EventStreamPoller] = None
        self.events_seen = 0
        self._shutdown_event = asyncio.Event()
        self._shutdown_requested = False

    def _setup_signal_handlers(self):
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown_signal, sig)

    def _handle_shutdown_signal(self, sig: signal.Signals):
        """Handle shutdown signal."""
        if self._shutdown_requested:
            logger.warning(f"Received {sig.name} again, forcing exit")
            sys.exit(1)

        logger.info(f"Received {sig.name}, initiating graceful shutdown")
        self.request_shutdown()

    def request_shutdown(self):
        self._shutdown_requested = True
        self._shutdown_event.set()

    def _on_event(self, event_type: Optional[str], message: Any):
        self.events_seen += 1
        logger.info(f"Event {event_type}", extra={"event_type": event_type, "event_message": message})

    def _on_fatal(self, exc: BaseException):
        logger.error(f"Event stream stopped on fatal error: {exc}")
        self.request_shutdown()

    async def run(self, install_signal_handlers: bool = True):
        """Poll the stream until shutdown is requested or a fatal error occurs."""
        config = self.config

        logger.info("Starting Event Stream Runner")
        logger.info(f"  Server: {config.base_url}{config.events_uri}")
        logger.info(f"  Protocol: {config.stream_protocol_name}")
        logger.info(f"  Position store: {config.db_path}")

        if install_signal_handlers:
            self._setup_signal_handlers()

        platform = AsyncioPlatform(on_error=self._on_fatal)
        http = HttpxHttpClient(config.base_url, platform=platform, timeout=config.http_timeout)
        store = SqlitePositionStore(config.db_path, stream=config.stream_name)

        try:
            self.poller = EventStreamPoller(
                config.events_uri,
                self._on_event,
                http,
                backoff=config.polling_backoff(),
                platform=platform,
                position_store=store,
                protocol=config.stream_protocol,
            )
            logger.info("Event stream poller is running")

            await self._shutdown_event.wait()
        finally:
            logger.info("Stopping event stream poller")
            if self.poller:
                self.poller.disable()
            await platform.close()
            await http.aclose()
            store.close()
            logger.info(f"Event stream poller stopped after {self.events_seen} events")

    def health_check(self) -> dict:
        """Return health status for monitoring."""
        running = self.poller is not None and self.poller.enabled
        return {
            "status": "healthy" if running and not self._shutdown_requested else "unhealthy",
            "running": running,
            "cursor": self.poller.cursor if self.poller else None,
            "events_seen": self.events_seen,
            "shutdown_requested": self._shutdown_requested,
        }


async def main():
    """Main entry point."""
    config = SyncConfig()
    configure_logging(level=config.log_level, structured=config.log_structured)
    init_metrics()

    issues = config.validate()
    for issue in issues:
        logger.warning(issue)
    if any(issue.startswith("ERROR") for issue in issues):
        sys.exit(1)

    runner = EventStreamRunner(config)
    await runner.run()


if __name__ == "__main__":
    asyncio.run(main())
