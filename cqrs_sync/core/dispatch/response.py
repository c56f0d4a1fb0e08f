"""
HTTP response tuple and the predicates the client-side tables share.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Collection, Dict, Optional


@dataclass(frozen=True)
class HttpResponse:
    """The (err, uri, status, headers, body) outcome of one HTTP call."""
    err: Optional[BaseException]
    uri: Optional[str]
    status: Optional[int]
    headers: Optional[Dict[str, str]] = None
    body: Any = None

    def field(self, name: str) -> Any:
        """Read a top-level body field; non-object bodies have no fields."""
        if isinstance(self.body, dict):
            return self.body.get(name)
        return None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        if not self.headers:
            return None
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


def describe_response(response: HttpResponse) -> str:
    """Render a response for dispatch diagnostics."""
    return (
        "{err: %s, uri: %s, status: %s, headers: %s, body: %s}" % (
            response.err,
            response.uri,
            response.status,
            json.dumps(response.headers, default=str),
            json.dumps(response.body, default=str),
        )
    )


def is_network_error(response: HttpResponse) -> bool:
    return response.err is not None


def is_server_error(response: HttpResponse) -> bool:
    return (
        response.err is None
        and response.status is not None
        and 500 <= response.status < 600
    )


def is_success(response: HttpResponse) -> bool:
    return (
        response.err is None
        and response.status is not None
        and 200 <= response.status < 300
    )


def status_in(statuses: Collection[int]) -> Callable[[HttpResponse], bool]:
    """Predicate factory: no transport error and status in the given set."""
    def predicate(response: HttpResponse) -> bool:
        return response.err is None and response.status in statuses
    return predicate
