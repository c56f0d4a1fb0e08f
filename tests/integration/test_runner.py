"""
Integration test for the event stream runner.
"""

import asyncio

import httpx
import pytest

from cqrs_sync.core.config import SyncConfig
from cqrs_sync.core.events import SqlitePositionStore
from cqrs_sync.core.events import runner as runner_module
from cqrs_sync.core.events.runner import EventStreamRunner
from cqrs_sync.core.http import HttpxHttpClient


def mock_server(request):
    responses = {
        "/events": {"next": "/events/1"},
        "/events/1": {"type": "created", "message": {"id": 1}, "next": "/events/2"},
        "/events/2": {"type": "renamed", "message": {"id": 1, "name": "b"}},
    }
    return httpx.Response(200, json=responses[request.url.path])


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.setenv("SYNC_DB_PATH", str(tmp_path / "runner.db"))
    monkeypatch.setenv("SYNC_POLL_INTERVAL_MS", "5")
    monkeypatch.delenv("SYNC_STREAM_PROTOCOL", raising=False)
    monkeypatch.delenv("SYNC_EVENTS_URI", raising=False)
    return SyncConfig()


@pytest.fixture
def mocked_transport(monkeypatch):
    def factory(base_url, platform=None, timeout=None):
        client = httpx.AsyncClient(base_url=base_url, transport=httpx.MockTransport(mock_server))
        return HttpxHttpClient(platform=platform, client=client)

    monkeypatch.setattr(runner_module, "HttpxHttpClient", factory)


class TestEventStreamRunner:

    def test_health_before_start(self, config):
        runner = EventStreamRunner(config)

        health = runner.health_check()

        assert health["status"] == "unhealthy"
        assert health["running"] is False
        assert health["events_seen"] == 0

    @pytest.mark.asyncio
    async def test_runs_until_shutdown_and_persists_position(self, config, mocked_transport):
        runner = EventStreamRunner(config)
        task = asyncio.create_task(runner.run(install_signal_handlers=False))

        for _ in range(200):
            if runner.events_seen >= 2:
                break
            await asyncio.sleep(0.01)

        health = runner.health_check()
        assert health["status"] == "healthy"
        assert health["cursor"] == "/events/2"

        runner.request_shutdown()
        await asyncio.wait_for(task, timeout=2)

        assert runner.events_seen == 2
        assert runner.poller.enabled is False

        store = SqlitePositionStore(config.db_path)
        assert store.latest() == "/events/2"
        store.close()
