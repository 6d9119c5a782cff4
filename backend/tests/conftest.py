from __future__ import annotations

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from backend.app.db import models
from backend.app.db.memory_store import InMemoryInventoryStore
from backend.app.db.session import make_session_factory
from backend.app.db.store import SqlAlchemyInventoryStore


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    models.Base.metadata.create_all(engine)
    yield SqlAlchemyInventoryStore(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def memory_store():
    return InMemoryInventoryStore()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")
