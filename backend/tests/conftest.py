from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from db import init_db, make_engine
from deps import get_now
from main import create_app
from session_manager import SessionManager
from store import InMemorySessionStore, SQLModelSessionStore

T0 = datetime(2024, 3, 10, 14, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def memory_store():
    return InMemorySessionStore()


@pytest.fixture
def manager(memory_store):
    m = SessionManager(memory_store)
    m.refresh()
    return m


@pytest.fixture
def sql_engine():
    engine = make_engine("sqlite://", echo=False)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(sql_engine):
    return SQLModelSessionStore(sql_engine)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def client(memory_store, clock):
    app = create_app(store=memory_store)
    app.dependency_overrides[get_now] = lambda: clock.now
    with TestClient(app) as c:
        yield c
