"""Shared fixtures: a fresh SQLite database per test and wired services."""

from __future__ import annotations

import pytest
import pytest_asyncio

from queryjam.core.schemas import DatasetCreate, SessionCreate
from queryjam.core.validator import QueryValidator
from queryjam.messaging.hub import BroadcastHub
from queryjam.runtime.chat import ChatService
from queryjam.runtime.context import Principal
from queryjam.runtime.datasets import DatasetService
from queryjam.runtime.executor import QueryEngine
from queryjam.runtime.lifecycle import QueryLifecycleManager
from queryjam.runtime.sessions import SessionService
from queryjam.runtime.store import InMemoryDatasetStore
from queryjam.service.database import Database


PEOPLE = [
    {"name": "Ada", "age": 36, "city": "London", "tags": ["math"]},
    {"name": "Brian", "age": 29, "city": "Oslo", "tags": []},
    {"name": "Chen", "age": 41, "city": "Oslo", "tags": ["ops", "db"]},
    {"name": "Dana", "age": 23, "city": "Bergen"},
    {"name": "Eli", "age": 52, "city": "London", "tags": ["db"]},
    {"name": "Fay", "age": 33, "city": None},
    {"name": "Gus", "age": 47, "city": "Oslo", "tags": ["math", "db"]},
    {"name": "Hana", "age": 30, "city": "Bergen", "tags": ["ops"]},
]


@pytest.fixture
def alice() -> Principal:
    return Principal(id="alice", name="Alice", origin="10.0.0.1")


@pytest.fixture
def bob() -> Principal:
    return Principal(id="bob", name="Bob", origin="10.0.0.2")


@pytest.fixture
def carol() -> Principal:
    return Principal(id="carol", name="Carol", origin="10.0.0.3")


@pytest.fixture
def anonymous() -> Principal:
    return Principal(origin="10.0.0.9")


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'queryjam.db'}")
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture
def store() -> InMemoryDatasetStore:
    return InMemoryDatasetStore()


@pytest.fixture
def sessions(database, hub, store) -> SessionService:
    return SessionService(database, hub, store)


@pytest.fixture
def datasets(database, store) -> DatasetService:
    return DatasetService(database, store)


@pytest.fixture
def chat(database) -> ChatService:
    return ChatService(database)


@pytest.fixture
def engine(store, datasets) -> QueryEngine:
    return QueryEngine(store, datasets.collection_for)


@pytest.fixture
def lifecycle(database, engine, hub) -> QueryLifecycleManager:
    return QueryLifecycleManager(database, engine, hub, QueryValidator())


@pytest_asyncio.fixture
async def shared_session(sessions, alice):
    """Private session owned by alice."""
    return await sessions.create(alice, SessionCreate(name="Team analysis"))


@pytest_asyncio.fixture
async def people(datasets, alice, shared_session):
    """Eight-row dataset attached to the shared session."""
    return await datasets.register(
        alice,
        DatasetCreate(name="people", session_id=shared_session.id, rows=PEOPLE),
    )
