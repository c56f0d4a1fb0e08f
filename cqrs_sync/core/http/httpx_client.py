"""
httpx Transport

Adapts httpx.AsyncClient to the callback-shaped HttpClient interface. Each
request runs as a platform task; transport failures (including timeouts)
are reported as err, HTTP statuses of any kind as status. Exceptions
raised by a callback escape the task and reach Platform.report_error.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..platform import AsyncioPlatform
from .base import ResponseCallback

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class HttpxHttpClient:
    """
    HttpClient over httpx.

    Usage:
        async def main():
            platform = AsyncioPlatform()
            http = HttpxHttpClient("https://api.example.com", platform=platform)
            client = CommandOutboxClient(http, repository, platform=platform,
                                         endpoint_prefix="/commands/")
            ...
            await http.aclose()

    Redirects are not followed: the event stream treats them as pointers.
    """

    def __init__(
        self,
        base_url: str = "",
        platform: Optional[AsyncioPlatform] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self._platform = platform or AsyncioPlatform()
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json", **(headers or {})},
            follow_redirects=False,
        )

    def post(self, endpoint: str, payload: Any, callback: ResponseCallback) -> None:
        self._platform.spawn(self._request("POST", endpoint, callback, json=payload))

    def get(self, uri: str, callback: ResponseCallback) -> None:
        self._platform.spawn(self._request("GET", uri, callback))

    async def _request(self, method: str, uri: str, callback: ResponseCallback, **kwargs):
        try:
            response = await self._client.request(method, uri, **kwargs)
        except httpx.HTTPError as e:
            logger.debug(f"{method} {uri} failed: {e!r}")
            callback(e, uri, None, None, None)
            return

        logger.debug(f"{method} {uri} -> {response.status_code}")
        callback(None, uri, response.status_code, dict(response.headers), _parse_body(response))

    async def aclose(self):
        await self._client.aclose()


def _parse_body(response: httpx.Response) -> Any:
    """JSON body when there is one, raw text otherwise, None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
