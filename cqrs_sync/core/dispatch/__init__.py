"""
Exclusive Predicate Dispatch

Shared by the outbox client, the event poller and the request router.
"""

from .table import DispatchTable, Rule
from .response import (
    HttpResponse,
    describe_response,
    is_network_error,
    is_server_error,
    is_success,
    status_in,
)

__all__ = [
    "DispatchTable",
    "Rule",
    "HttpResponse",
    "describe_response",
    "is_network_error",
    "is_server_error",
    "is_success",
    "status_in",
]
