"""
Integration tests: outbox client and event poller over the httpx transport,
driven by the asyncio platform against an in-process mock server.
"""

import asyncio
import json

import httpx
import pytest

from cqrs_sync.core.backoff import BackoffPolicy, PollingBackoffPolicy, constant
from cqrs_sync.core.errors import UnexpectedResponse
from cqrs_sync.core.events import EventStreamPoller, MemoryPositionStore
from cqrs_sync.core.http import HttpxHttpClient
from cqrs_sync.core.outbox import CommandOutboxClient, InMemoryRepository
from cqrs_sync.core.platform import AsyncioPlatform

BASE_URL = "http://sync.test"


def fast_outbox_backoff():
    return BackoffPolicy(
        server_error_increase=constant(1),
        client_error_increase=constant(1),
    )


def fast_polling_backoff():
    return PollingBackoffPolicy(
        server_error_increase=constant(1),
        client_error_increase=constant(1),
        waiting_increase=constant(5),
    )


async def wait_for(condition, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


def make_http(platform, handler):
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return HttpxHttpClient(platform=platform, client=client)


class TestHttpxHttpClient:

    @pytest.mark.asyncio
    async def test_post_reports_status_headers_and_json_body(self):
        platform = AsyncioPlatform()
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.read())
            return httpx.Response(200, json={"ok": True})

        http = make_http(platform, handler)
        results = []
        http.post("/commands/add", {"sku": "A-1"}, lambda *args: results.append(args))
        await wait_for(lambda: results)

        err, uri, status, headers, body = results[0]
        assert err is None
        assert uri == "/commands/add"
        assert status == 200
        assert headers["content-type"] == "application/json"
        assert body == {"ok": True}
        assert seen == {"method": "POST", "path": "/commands/add", "body": {"sku": "A-1"}}
        await http.aclose()

    @pytest.mark.asyncio
    async def test_transport_failure_reported_as_err(self):
        platform = AsyncioPlatform()

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        http = make_http(platform, handler)
        results = []
        http.get("/events", lambda *args: results.append(args))
        await wait_for(lambda: results)

        err, uri, status, headers, body = results[0]
        assert isinstance(err, httpx.ConnectError)
        assert (uri, status, headers, body) == ("/events", None, None, None)
        await http.aclose()

    @pytest.mark.asyncio
    async def test_redirects_and_empty_bodies_are_passed_through(self):
        platform = AsyncioPlatform()

        def handler(request):
            return httpx.Response(302, headers={"Location": "/events/1"})

        http = make_http(platform, handler)
        results = []
        http.get("/events", lambda *args: results.append(args))
        await wait_for(lambda: results)

        _, _, status, headers, body = results[0]
        assert status == 302
        assert headers["location"] == "/events/1"
        assert body is None
        await http.aclose()

    @pytest.mark.asyncio
    async def test_callback_errors_reach_platform(self):
        errors = []
        platform = AsyncioPlatform(on_error=errors.append)
        http = make_http(platform, lambda request: httpx.Response(200))

        def callback(*args):
            raise UnexpectedResponse("/x", 418)

        http.get("/x", callback)
        await wait_for(lambda: errors)

        assert isinstance(errors[0], UnexpectedResponse)
        await http.aclose()


class TestOutboxOverHttpx:

    @pytest.mark.asyncio
    async def test_commands_delivered_in_order_despite_errors(self):
        platform = AsyncioPlatform()
        received = []
        attempts = {"n": 0}

        def handler(request):
            attempts["n"] += 1
            if attempts["n"] in (1, 3):
                return httpx.Response(503)
            if attempts["n"] == 4:
                raise httpx.ReadTimeout("slow", request=request)
            received.append((request.url.path, json.loads(request.read())))
            return httpx.Response(200)

        http = make_http(platform, handler)
        repository = InMemoryRepository()
        client = CommandOutboxClient(
            http,
            repository,
            backoff=fast_outbox_backoff(),
            platform=platform,
            endpoint_prefix="/commands/",
        )

        client.submit("first", {"n": 1})
        client.submit("second", {"n": 2})
        client.submit("third", {"n": 3})
        await wait_for(lambda: len(repository) == 0 and not client.busy)

        assert received == [
            ("/commands/first", {"n": 1}),
            ("/commands/second", {"n": 2}),
            ("/commands/third", {"n": 3}),
        ]
        await platform.close()
        await http.aclose()

    @pytest.mark.asyncio
    async def test_unexpected_status_reaches_owner(self):
        errors = []
        platform = AsyncioPlatform(on_error=errors.append)
        http = make_http(platform, lambda request: httpx.Response(406))
        client = CommandOutboxClient(http, InMemoryRepository(), platform=platform)

        client.submit("add", {})
        await wait_for(lambda: errors)

        assert isinstance(errors[0], UnexpectedResponse)
        assert errors[0].status == 406
        assert client.busy is False
        await http.aclose()


class TestPollerOverHttpx:

    @pytest.mark.asyncio
    async def test_walks_chain_and_waits_at_head(self):
        platform = AsyncioPlatform()
        chain = {
            "/events": (200, {"next": "/events/1"}),
            "/events/1": (200, {"type": "created", "message": {"id": 1}, "next": "/events/2"}),
            "/events/2": (500, None),
            "/events/2#ok": (200, {"type": "renamed", "message": {"id": 1, "name": "b"}}),
        }
        hits = {}

        def handler(request):
            path = request.url.path
            hits[path] = hits.get(path, 0) + 1
            key = path
            if path == "/events/2" and hits[path] > 1:
                key = "/events/2#ok"
            status, body = chain[key]
            return httpx.Response(status, json=body) if body is not None else httpx.Response(status)

        http = make_http(platform, handler)
        store = MemoryPositionStore()
        events = []
        poller = EventStreamPoller(
            "/events",
            lambda event_type, message: events.append((event_type, message)),
            http,
            backoff=fast_polling_backoff(),
            platform=platform,
            position_store=store,
        )

        await wait_for(lambda: hits.get("/events/2", 0) >= 4)
        poller.disable()

        assert events == [("created", {"id": 1}), ("renamed", {"id": 1, "name": "b"})]
        assert store.latest() == "/events/2"
        await platform.close()
        await http.aclose()
