"""Pytest configuration and shared fixtures."""

import os


# Settings are read at import time, so test credentials must exist first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("OAUTH_CLIENT_ID", "test-client-id")
os.environ.setdefault("OAUTH_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("PUBLIC_URL", "http://testserver")

from collections.abc import AsyncIterator  # noqa: E402

import pytest  # noqa: E402

from src.core import db_client  # noqa: E402
from src.core.config import settings  # noqa: E402


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch) -> AsyncIterator[str]:
    """Provide a fresh on-disk SQLite store with the schema applied."""
    db_path = str(tmp_path / "tarefas.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()
