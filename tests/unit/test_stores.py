"""
Tests for outbox repositories and stream position stores.
"""

import pytest

from cqrs_sync.core.events import (
    MemoryPositionStore,
    NullPositionStore,
    PositionStore,
    SqlitePositionStore,
)
from cqrs_sync.core.outbox import (
    Command,
    InMemoryRepository,
    Repository,
    SqliteRepository,
)


class TestRepositories:
    """Both repositories behave as FIFO queues."""

    @pytest.fixture(params=["memory", "sqlite"])
    def repository(self, request):
        if request.param == "memory":
            yield InMemoryRepository()
        else:
            repository = SqliteRepository()
            yield repository
            repository.close()

    def test_satisfies_protocol(self, repository):
        assert isinstance(repository, Repository)

    def test_empty_queue(self, repository):
        assert repository.get_first() is None
        repository.remove_first()
        assert repository.get_first() is None

    def test_fifo(self, repository):
        repository.add("first", {"n": 1})
        repository.add("second", [1, 2, 3])
        repository.add("third", None)

        seen = []
        while repository.get_first() is not None:
            seen.append(repository.get_first())
            repository.remove_first()

        assert seen == [
            Command(name="first", payload={"n": 1}),
            Command(name="second", payload=[1, 2, 3]),
            Command(name="third", payload=None),
        ]

    def test_get_first_does_not_consume(self, repository):
        repository.add("only", "x")

        assert repository.get_first() == repository.get_first()
        assert len(repository) == 1


class TestSqliteRepository:

    def test_queue_survives_reopen(self, tmp_path):
        path = str(tmp_path / "outbox.db")
        repository = SqliteRepository(path)
        repository.add("a", 1)
        repository.add("b", 2)
        repository.remove_first()
        repository.close()

        reopened = SqliteRepository(path)
        assert reopened.get_first() == Command(name="b", payload=2)
        assert len(reopened) == 1
        reopened.close()

    def test_rejects_unsafe_table_name(self):
        with pytest.raises(ValueError):
            SqliteRepository(table="outbox; DROP TABLE x")


class TestPositionStores:

    def test_null_store_remembers_nothing(self):
        store = NullPositionStore()
        store.transitioned_to("/events/3")

        assert store.latest() is None
        assert isinstance(store, PositionStore)

    def test_memory_store(self):
        store = MemoryPositionStore()
        assert store.latest() is None

        store.transitioned_to("/events/1")
        store.transitioned_to("/events/2")

        assert store.latest() == "/events/2"

    def test_sqlite_store_survives_reopen(self, tmp_path):
        path = str(tmp_path / "position.db")
        store = SqlitePositionStore(path, stream="orders")
        store.transitioned_to("/events/1")
        store.transitioned_to("/events/9")
        store.close()

        reopened = SqlitePositionStore(path, stream="orders")
        assert reopened.latest() == "/events/9"
        reopened.close()

    def test_sqlite_streams_are_independent(self):
        orders = SqlitePositionStore(stream="orders")
        orders.transitioned_to("/orders/4")

        assert orders.latest() == "/orders/4"
        assert SqlitePositionStore(stream="orders").latest() is None
        orders.close()
