"""
HTTP Client Interface

Callback-shaped transport used by the outbox client and the event poller.
Each call invokes its callback exactly once with
(err, uri, status, headers, body): err is set for transport failures and
the remaining fields are then None.
"""

from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

ResponseCallback = Callable[
    [Optional[BaseException], Optional[str], Optional[int], Optional[Dict[str, str]], Any],
    None
]


@runtime_checkable
class HttpClient(Protocol):

    def post(self, endpoint: str, payload: Any, callback: ResponseCallback) -> None:
        ...

    def get(self, uri: str, callback: ResponseCallback) -> None:
        ...
