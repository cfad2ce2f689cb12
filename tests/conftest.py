"""Shared pytest fixtures for mortarQL unit and integration tests."""
from __future__ import annotations

from collections.abc import Iterator

import pytest

from mortarql.connection.sqlite import SQLiteConnection
from mortarql.execute.builder import QueryBuilder
from mortarql.schema.metadata import SchemaResolver
from mortarql.tracking.cache import TTLCache
from mortarql.tracking.tracker import ChangeTracker
from tests.fixtures import FakeClock, RecordingConnection


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def resolver() -> SchemaResolver:
    """A private resolver so tests never share cached metadata."""
    return SchemaResolver()


@pytest.fixture()
def tracker(resolver: SchemaResolver, clock: FakeClock) -> ChangeTracker:
    return ChangeTracker(resolver, TTLCache(clock=clock))


@pytest.fixture()
def recording() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture()
def builder(recording: RecordingConnection, tracker: ChangeTracker, resolver: SchemaResolver) -> QueryBuilder:
    """Builder on a recording connection with change tracking enabled."""
    return QueryBuilder(recording, tracker=tracker, resolver=resolver)


@pytest.fixture()
def memory_db() -> Iterator[SQLiteConnection]:
    conn = SQLiteConnection(":memory:")
    conn.connect()
    yield conn
    conn.disconnect()
