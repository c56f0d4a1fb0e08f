"""
Sync Core Exceptions

Error taxonomy shared by the outbox client, the event poller and the
request router.

Transient failures (network errors, 5xx responses) never surface as
exceptions: they are absorbed into backoff and rescheduling. Everything
defined here is fatal to the component that raises it.
"""

import json
from typing import Any, Dict, List, Optional


def _render(value: Any) -> str:
    """Render a headers/body value for diagnostics."""
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)


class SyncError(Exception):
    """Base exception for the sync core."""


class DispatchError(SyncError):
    """
    A dispatch table was consulted with an input its rules do not partition.

    These are programming errors: a complete rule set never raises them.
    """


class NoMatchingRule(DispatchError):
    """No registered rule accepts the input."""

    def __init__(self, rendered_input: str):
        self.rendered_input = rendered_input
        super().__init__(f"No rule can handle: {rendered_input}")


class AmbiguousRules(DispatchError):
    """More than one registered rule accepts the input."""

    def __init__(self, rule_names: List[str], rendered_input: str):
        self.rule_names = rule_names
        self.rendered_input = rendered_input
        super().__init__(
            f"Only one rule should match, but {', '.join(rule_names)} "
            f"matched {rendered_input}"
        )


class DuplicateRule(DispatchError):
    """A rule with the same name is already registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate rules exist for name: {name}")


class PersistenceError(SyncError):
    """The outbox repository refused to store a command."""

    def __init__(self, command_name: str, cause: Exception):
        self.command_name = command_name
        self.cause = cause
        super().__init__(f"Failed to persist command '{command_name}': {cause}")


class UnexpectedResponse(SyncError):
    """
    The server answered with a status no rule models.

    Never retried: retrying on unmodeled server behaviour could mask a bug.
    """

    def __init__(
        self,
        uri: Optional[str],
        status: Optional[int],
        headers: Optional[Dict[str, str]] = None,
        body: Any = None
    ):
        self.uri = uri
        self.status = status
        self.headers = headers
        self.body = body
        super().__init__(
            f"Unexpected response: uri={uri}, status={status}, "
            f"headers={_render(headers)}, body={_render(body)}"
        )


class ProtocolViolation(SyncError):
    """An event resource is missing fields the protocol requires."""

    def __init__(self, uri: str, body: Any, missing: List[str]):
        self.uri = uri
        self.body = body
        self.missing = missing
        super().__init__(
            f"Expected both type and message to be set in body of {uri}, "
            f"missing: {', '.join(missing)}"
        )


class InvalidJsonBody(SyncError):
    """A request body could not be parsed as JSON."""

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        message = "Only 'Content-Type: application/json; charset=utf-8' is accepted. Supplied JSON is invalid"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnknownCommand(SyncError):
    """The local application has no handler for a submitted command."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Local application cannot execute command: {name}")
