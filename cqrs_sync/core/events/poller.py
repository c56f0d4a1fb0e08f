"""
Event Stream Poller

Walks the server's linked chain of event resources and hands every genuine
event to a consumer, in chain order.

Each response is classified by an exclusive dispatch table; the chosen
rule schedules the one and only next poll. Polls are therefore totally
ordered: a GET for the next link is never issued before the previous one
has been answered.

A URI reached by following a next pointer carries a pending transition.
When that URI answers with an event, the position store is told first and
the consumer second, so a crash in between resumes after the event rather
than redelivering it. Retries of such a URI keep the pending transition.

Position stores may answer synchronously or with awaitables; an awaited
commit holds back both delivery and the next poll until it resolves.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..backoff import PollingBackoffPolicy
from ..dispatch import (
    DispatchTable,
    HttpResponse,
    Rule,
    describe_response,
    is_network_error,
    is_server_error,
    is_success,
)
from ..errors import ProtocolViolation, SyncError, UnexpectedResponse
from ..http.base import HttpClient
from ..observability.metrics import record_counter
from ..platform import AsyncioPlatform, Platform
from .models import EventResource, LINKED_PROTOCOL, StreamProtocol
from .position import NullPositionStore, PositionStore

logger = logging.getLogger(__name__)

EventCallback = Callable[[Optional[str], Any], None]
ErrorCallback = Callable[[SyncError], None]


@dataclass(frozen=True)
class PollResult:
    """A response together with the poll that produced it."""
    uri: str
    delay: int
    advancing: bool
    response: HttpResponse

    @property
    def resource(self) -> EventResource:
        body = self.response.body if isinstance(self.response.body, dict) else {}
        return EventResource.model_construct(
            type=body.get("type"),
            message=body.get("message"),
            next=body.get("next"),
        )


def _log_protocol_violation(error: SyncError) -> None:
    logger.error(f"Event stream protocol violation: {error}")


class EventStreamPoller:
    """
    Resumable, ordered event stream consumer.

    Usage:
        def on_event(event_type, message):
            print(event_type, message)

        poller = EventStreamPoller(
            "/events",
            on_event,
            http,
            position_store=SqlitePositionStore("sync.db"),
        )
        ...
        poller.disable()

    Polling starts from the constructor at zero delay, at the position
    store's latest URI when it has one, else at initial_uri.
    """

    def __init__(
        self,
        initial_uri: str,
        on_event: EventCallback,
        http: HttpClient,
        backoff: Optional[PollingBackoffPolicy] = None,
        platform: Optional[Platform] = None,
        position_store: Optional[PositionStore] = None,
        protocol: StreamProtocol = LINKED_PROTOCOL,
        on_error: Optional[ErrorCallback] = None
    ):
        if not initial_uri:
            raise ValueError("Provide an initial uri")
        if not callable(on_event):
            raise ValueError("Provide an event callback taking (event_type, message)")
        if http is None:
            raise ValueError("Provide an http interface")

        self._initial_uri = initial_uri
        self._on_event = on_event
        self._http = http
        self._backoff = backoff or PollingBackoffPolicy()
        self._platform = platform or AsyncioPlatform()
        self._position_store = position_store or NullPositionStore()
        self._protocol = protocol
        self._on_error = on_error or _log_protocol_violation

        self._enabled = True
        self._cursor: Optional[str] = None
        self.last_error: Optional[Exception] = None

        self._table = self._build_table()

        self._when_done(self._position_store.latest(), self._start)

    def _start(self, latest: Optional[str]):
        if latest:
            logger.info(f"Resuming event stream at {latest}")
            start = latest
        else:
            start = self._initial_uri
            logger.info(f"Starting event stream at {start}")

        self._poll(start, 0, advancing=False)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def cursor(self) -> Optional[str]:
        """URI of the most recently issued poll."""
        return self._cursor

    @property
    def protocol(self) -> StreamProtocol:
        return self._protocol

    def disable(self):
        """
        Stop polling.

        A GET already in flight still completes, but its response is
        discarded and schedules nothing. An event carried by that response
        is not delivered either; the position store is left untouched, so
        a restarted poller fetches it again.
        """
        self._enabled = False
        logger.info("Event stream poller disabled")

    # Classification

    def _is_waiting(self, result: PollResult) -> bool:
        response = result.response
        return response.err is None and response.status in self._protocol.waiting_statuses

    def _is_event_success(self, result: PollResult) -> bool:
        return is_success(result.response) and not self._is_waiting(result)

    def _is_redirect(self, result: PollResult) -> bool:
        response = result.response
        return (
            response.err is None
            and response.status in self._protocol.redirect_statuses
            and response.header("location") is not None
        )

    def _is_placeholder(self, result: PollResult) -> bool:
        if self._is_redirect(result):
            return True
        return self._is_event_success(result) and result.resource.is_placeholder

    def _is_at_head(self, result: PollResult) -> bool:
        resource = result.resource
        return (
            self._is_event_success(result)
            and resource.message is not None
            and resource.next is None
        )

    def _is_event_with_next(self, result: PollResult) -> bool:
        resource = result.resource
        return (
            self._is_event_success(result)
            and resource.message is not None
            and resource.next is not None
        )

    def _build_table(self) -> DispatchTable[PollResult]:
        modeled = [
            ("no_event_yet", self._is_waiting, self._on_waiting),
            ("placeholder", self._is_placeholder, self._on_placeholder),
            ("at_head", self._is_at_head, self._on_at_head),
            ("event_with_next", self._is_event_with_next, self._on_event_with_next),
            ("server_error", lambda r: is_server_error(r.response), self._on_server_error),
            ("network_error", lambda r: is_network_error(r.response), self._on_network_error),
        ]

        def is_unexpected(result: PollResult) -> bool:
            return not any(predicate(result) for _, predicate, _ in modeled)

        table: DispatchTable[PollResult] = DispatchTable(
            describe=lambda r: describe_response(r.response)
        )
        for name, predicate, action in modeled:
            table.register(Rule(name, predicate, action))
        table.register(Rule("unexpected", is_unexpected, self._on_unexpected))
        return table

    # Scheduling

    def _poll(self, uri: str, delay: int, advancing: bool):
        def fire():
            if not self._enabled:
                logger.debug(f"Poller disabled, not polling {uri}")
                return
            self._cursor = uri
            self._http.get(uri, self._response_callback(uri, delay, advancing))

        self._platform.set_timeout(fire, delay)

    def _response_callback(self, uri: str, delay: int, advancing: bool) -> Callable[..., None]:
        answered = False

        def callback(err, response_uri, status, headers, body):
            nonlocal answered
            if answered:
                logger.error(f"Ignoring repeated response for {uri}: status={status}")
                return
            answered = True

            if not self._enabled:
                logger.debug(f"Poller disabled, discarding response for {uri}")
                return

            response = HttpResponse(err, response_uri, status, headers, body)
            self._table.dispatch(PollResult(uri, delay, advancing, response))

        return callback

    def _notify(self, hook: Callable[..., None], *args: Any):
        def run():
            try:
                hook(*args)
            except Exception as e:
                logger.exception(f"Backoff hook {getattr(hook, '__name__', hook)} failed: {e}")

        self._platform.set_timeout(run, 0)

    def _when_done(self, result: Any, then: Callable[[Any], None]):
        """Call then(value) now, or once an awaitable store result resolves."""
        if not inspect.isawaitable(result):
            then(result)
            return

        def resolved(future: asyncio.Future):
            if future.cancelled():
                return
            exc = future.exception()
            if exc is not None:
                self._platform.report_error(exc)
                return
            try:
                then(future.result())
            except Exception as e:
                self._platform.report_error(e)

        asyncio.ensure_future(result).add_done_callback(resolved)

    # Rule actions

    def _on_waiting(self, result: PollResult):
        delay = self._backoff.waiting_increase(result.delay)
        self._notify(self._backoff.waiting_callback, result.uri, delay)
        self._poll(result.uri, delay, result.advancing)

    def _on_placeholder(self, result: PollResult):
        next_uri = result.resource.next or result.response.header("location")
        self._advance(result, lambda: self._poll(next_uri, 0, advancing=True))

    def _on_at_head(self, result: PollResult):
        def wait_at_head():
            delay = self._backoff.waiting_increase(result.delay)
            self._notify(self._backoff.waiting_callback, result.uri, delay)
            self._poll(result.uri, delay, advancing=False)

        self._advance(result, wait_at_head)

    def _on_event_with_next(self, result: PollResult):
        next_uri = result.resource.next
        self._advance(result, lambda: self._poll(next_uri, 0, advancing=True))

    def _advance(self, result: PollResult, then: Callable[[], None]):
        if result.advancing:
            self._transition(result, then)
        else:
            then()

    def _on_server_error(self, result: PollResult):
        delay = self._backoff.server_error_increase(result.delay)
        record_counter("stream_retries_total", attributes={"reason": "server_error"})
        self._notify(self._backoff.server_error_callback, result.uri, result.response.err, delay)
        self._poll(result.uri, delay, result.advancing)

    def _on_network_error(self, result: PollResult):
        delay = self._backoff.client_error_increase(result.delay)
        record_counter("stream_retries_total", attributes={"reason": "network_error"})
        self._notify(self._backoff.client_error_callback, result.uri, result.response.err, delay)
        self._poll(result.uri, delay, result.advancing)

    def _on_unexpected(self, result: PollResult):
        response = result.response
        error = UnexpectedResponse(
            response.uri or result.uri, response.status, response.headers, response.body
        )
        self.last_error = error
        logger.error(f"Event stream poller stopped: {error}")
        raise error

    def _transition(self, result: PollResult, then: Callable[[], None]):
        """
        Record the new position, then hand the event to the consumer.

        Delivery runs in its own zero-delay timer armed ahead of the next
        poll, so events still reach the consumer in chain order and a
        consumer that raises cannot stop traversal.
        """
        resource = result.resource
        body = result.response.body if isinstance(result.response.body, dict) else {}
        missing = [field for field in ("type", "message") if body.get(field) is None]
        if missing:
            self._on_error(ProtocolViolation(result.uri, result.response.body, missing))
            then()
            return

        def committed(_):
            record_counter("stream_events_delivered_total", attributes={"type": resource.type})
            logger.debug(f"Delivering event {resource.type} from {result.uri}")
            self._platform.set_timeout(lambda: self._on_event(resource.type, resource.message), 0)
            then()

        self._when_done(self._position_store.transitioned_to(result.uri), committed)
