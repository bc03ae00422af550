"""Shared fixtures: a fresh SQLite database per test and an ASGI client."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from archimatch.config import settings
from archimatch.database import create_tables, get_db
from archimatch.main import app
from archimatch.utils import storage

DEMO_EMAIL = "demo@x.com"
DEMO_PASSWORD = "pw123"


@pytest.fixture(autouse=True)
def _local_storage(tmp_path, monkeypatch):
    """Uploads go to a temp dir; no bucket credentials leak in from the env."""
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "storage_endpoint_url", "")
    monkeypatch.setattr(settings, "storage_access_key_id", "")
    monkeypatch.setattr(settings, "storage_secret_access_key", "")
    monkeypatch.setattr(settings, "storage_public_url", "")
    storage.reset_client()
    yield
    storage.reset_client()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'archimatch.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(sessionmaker):
    """ORM session for service-level tests."""
    async with sessionmaker() as session:
        yield session


@pytest_asyncio.fixture
async def client(sessionmaker):
    """HTTP client against the app, with ``get_db`` bound to the test database."""

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def register_and_login(client, email: str, password: str, name: str = "Demo") -> dict:
    """Register an architect and return ``{"id", "headers"}`` for bearer calls."""
    resp = await client.post(
        "/api/architects/register",
        json={"email": email, "password": password, "name": name, "company": "Atelier"},
    )
    assert resp.status_code == 201, resp.text
    resp = await client.post("/api/architects/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    return {
        "id": body["architect"]["id"],
        "headers": {"Authorization": f"Bearer {body['accessToken']}"},
    }


@pytest_asyncio.fixture
async def architect(client) -> dict:
    return await register_and_login(client, DEMO_EMAIL, DEMO_PASSWORD)


@pytest_asyncio.fixture
async def other_architect(client) -> dict:
    return await register_and_login(client, "other@x.com", "secret", name="Other")
