"""Pytest configuration and fixtures for unit tests."""

import pytest
from fastapi.testclient import TestClient

from src.core.cache_client import cache_client
from src.core.config import Constants
from src.domain.session import Identity, Session
from src.main import app
from src.services.session_service import create_session_token
from tests.unit.mocks import InMemoryDBClient


ALICE = Identity(email="alice@example.com", name="Alice")
BOB = Identity(email="bob@example.com", name="Bob")


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.count_records", in_memory_db.count_records)

    return in_memory_db


@pytest.fixture(autouse=True)
async def clear_cache():
    """Home counters are cached globally; start every test cold."""
    await cache_client.delete(Constants.CACHE_KEY_HOME_COUNTERS)
    yield
    await cache_client.delete(Constants.CACHE_KEY_HOME_COUNTERS)


@pytest.fixture
def alice_session() -> Session:
    return Session(authenticated=True, identity=ALICE)


@pytest.fixture
def bob_session() -> Session:
    return Session(authenticated=True, identity=BOB)


@pytest.fixture
def client(patched_db) -> TestClient:
    """Anonymous test client backed by the in-memory store."""
    return TestClient(app)


def sign_in(client: TestClient, identity: Identity) -> TestClient:
    """Attach a signed session cookie for ``identity`` to the client."""
    client.cookies.set(Constants.SESSION_COOKIE_NAME, create_session_token(identity))
    return client


@pytest.fixture
def alice_client(client) -> TestClient:
    return sign_in(client, ALICE)


@pytest.fixture
def bob_client(patched_db) -> TestClient:
    return sign_in(TestClient(app), BOB)
