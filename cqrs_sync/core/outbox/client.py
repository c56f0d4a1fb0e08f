"""
Command Outbox Client

Delivers queued commands to the server one at a time, in submission order,
retrying failed attempts with backoff.

State machine:

    IDLE --submit--> FLUSHING --2xx--> FLUSHING (next head) ... --empty--> IDLE
                        |  ^
          network/5xx   v  |  delay elapsed
                      BACKOFF
                        |
    any other status -> FAILED (raises UnexpectedResponse)
    repository or transport raising -> FAILED (re-raised; resume() retries)

At most one flush attempt exists at any time, so the repository is only
ever touched by a single writer from this side.
"""

import logging
from typing import Any, Callable, Optional, Union

from ..backoff import BackoffPolicy
from ..dispatch import (
    DispatchTable,
    HttpResponse,
    Rule,
    describe_response,
    is_network_error,
    is_server_error,
    is_success,
)
from ..errors import PersistenceError, UnexpectedResponse, UnknownCommand
from ..http.base import HttpClient
from ..observability.metrics import record_counter
from ..platform import AsyncioPlatform, Platform
from .models import Command, OutboxState
from .repository import Repository

logger = logging.getLogger(__name__)

_MISSING = object()


def _is_unexpected(response: HttpResponse) -> bool:
    return not (
        is_network_error(response)
        or is_success(response)
        or is_server_error(response)
    )


class CommandOutboxClient:
    """
    Durable, ordered command delivery.

    Usage:
        client = CommandOutboxClient(http, SqliteRepository("outbox.db"))
        client.submit(Command(name="add_item", payload={"sku": "A-1"}))
        # or: client.submit("add_item", {"sku": "A-1"})

    submit() returns as soon as the command is persisted. Delivery is only
    observable through the repository draining and the backoff hooks.

    Delivery is at-least-once: a command whose acknowledgement is lost in
    transit is sent again, and no idempotency key travels with it.
    """

    def __init__(
        self,
        http: HttpClient,
        repository: Repository,
        backoff: Optional[BackoffPolicy] = None,
        platform: Optional[Platform] = None,
        local_app: Any = None,
        endpoint_prefix: str = ""
    ):
        self._http = http
        self._repository = repository
        self._backoff = backoff or BackoffPolicy()
        self._platform = platform or AsyncioPlatform()
        self._local_app = local_app
        self._endpoint_prefix = endpoint_prefix

        self._enabled = True
        self._state = OutboxState.IDLE
        self._delay = self._backoff.initial_delay
        self.last_error: Optional[Exception] = None

        self._table: DispatchTable[HttpResponse] = DispatchTable(describe=describe_response)
        self._table.register(Rule("network_error", is_network_error, self._on_network_error))
        self._table.register(Rule("success", is_success, self._on_success))
        self._table.register(Rule("server_error", is_server_error, self._on_server_error))
        self._table.register(Rule("unexpected", _is_unexpected, self._on_unexpected))

    @property
    def state(self) -> OutboxState:
        return self._state

    @property
    def busy(self) -> bool:
        """True while a flush timer or request is pending."""
        return self._state in (OutboxState.FLUSHING, OutboxState.BACKOFF)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def delay(self) -> int:
        """Current backoff delay in milliseconds."""
        return self._delay

    def submit(self, command: Union[Command, str], payload: Any = _MISSING) -> None:
        """
        Queue a command for delivery.

        Raises:
            UnknownCommand: the local application has no handler for it
            PersistenceError: the repository refused the command
        """
        if isinstance(command, Command):
            name, payload = command.name, command.payload
        else:
            name = command
            payload = None if payload is _MISSING else payload

        if self._local_app is not None:
            self._apply_locally(name, payload)

        try:
            self._repository.add(name, payload)
        except Exception as e:
            raise PersistenceError(name, e) from e

        record_counter("outbox_commands_submitted_total", attributes={"command": name})
        logger.debug(f"Queued command: {name}")

        if self._enabled and self._state == OutboxState.IDLE:
            self._schedule_flush(0)

    def disable(self):
        """Stop scheduling flushes. Queued commands stay in the repository."""
        self._enabled = False
        logger.info("Command outbox disabled")

    def resume(self):
        """Leave the FAILED state and retry the head command."""
        if self._state != OutboxState.FAILED:
            return
        logger.info(f"Command outbox resuming after failure: {self.last_error}")
        self._state = OutboxState.IDLE
        self.last_error = None
        if self._enabled:
            self._schedule_flush(0)

    def _apply_locally(self, name: str, payload: Any):
        handler = getattr(self._local_app, name, None)
        if not callable(handler):
            raise UnknownCommand(name)
        handler(payload)

    def _schedule_flush(self, delay: int, state: OutboxState = OutboxState.FLUSHING):
        self._state = state
        self._platform.set_timeout(self._exhaust_queue, delay)

    def _exhaust_queue(self):
        if not self._enabled:
            self._state = OutboxState.IDLE
            return

        try:
            command = self._repository.get_first()
        except Exception as e:
            self._fail(e)
            raise PersistenceError("<queue head>", e) from e

        if command is None:
            self._state = OutboxState.IDLE
            self._delay = self._backoff.initial_delay
            return

        self._state = OutboxState.FLUSHING
        endpoint = self._endpoint_prefix + command.name
        logger.debug(f"Posting command {command.name} to {endpoint}")
        try:
            self._http.post(endpoint, command.payload, self._response_callback(command))
        except Exception as e:
            if self._state != OutboxState.FAILED:
                self._fail(e)
            raise

    def _fail(self, error: Exception):
        self._state = OutboxState.FAILED
        self.last_error = error
        logger.error(f"Command outbox stopped: {error}")

    def _run_hook(self, hook: Callable[[int], None], delay: int):
        try:
            hook(delay)
        except Exception as e:
            logger.exception(f"Backoff hook {getattr(hook, '__name__', hook)} failed: {e}")

    def _response_callback(self, command: Command) -> Callable[..., None]:
        answered = False

        def callback(err, uri, status, headers, body):
            nonlocal answered
            if answered:
                logger.error(f"Ignoring repeated response for command {command.name}: status={status}")
                return
            answered = True
            self._table.dispatch(HttpResponse(err, uri, status, headers, body))

        return callback

    def _on_network_error(self, response: HttpResponse):
        self._retry(
            response,
            self._backoff.client_error_increase,
            self._backoff.client_error_callback,
            "network_error"
        )

    def _on_server_error(self, response: HttpResponse):
        self._retry(
            response,
            self._backoff.server_error_increase,
            self._backoff.server_error_callback,
            "server_error"
        )

    def _retry(
        self,
        response: HttpResponse,
        increase: Callable[[int], int],
        hook: Callable[[int], None],
        reason: str
    ):
        delay = increase(self._delay)
        self._delay = delay

        record_counter("outbox_retries_total", attributes={"reason": reason})
        logger.warning(
            f"Command delivery failed ({reason}, status={response.status}, err={response.err}), "
            f"retrying in {delay}ms"
        )

        self._platform.set_timeout(lambda: self._run_hook(hook, delay), 0)

        if not self._enabled:
            self._state = OutboxState.IDLE
            return

        self._schedule_flush(delay, OutboxState.BACKOFF)

    def _on_success(self, response: HttpResponse):
        try:
            self._repository.remove_first()
        except Exception as e:
            self._fail(e)
            raise PersistenceError("<acknowledged head>", e) from e

        record_counter("outbox_commands_delivered_total")
        logger.debug(f"Command acknowledged: uri={response.uri} status={response.status}")

        self._delay = self._backoff.initial_delay

        if not self._enabled:
            self._state = OutboxState.IDLE
            return

        self._schedule_flush(0)

    def _on_unexpected(self, response: HttpResponse):
        error = UnexpectedResponse(response.uri, response.status, response.headers, response.body)
        self._fail(error)
        raise error
