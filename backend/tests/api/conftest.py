"""API test fixtures — async SQLite DB, FastAPI test client, bearer tokens.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session
    - db_manager patched so the readiness probe sees the test engine
    - Tokens are issued by the same identity provider the app verifies with

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (row locks and pool options are PostgreSQL concerns not exercised here)
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

import stm.infrastructure.database as db_module
from stm.db.schema import create_schema
from stm.infrastructure.database import DatabaseSessionManager, get_db
from stm.infrastructure.identity import get_identity_provider
from stm.main import app
from tests.factories import project_payload, task_payload


@pytest.fixture
async def test_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def auth():
    """auth("alice") -> headers carrying a valid bearer token for alice."""
    def _headers(user: str) -> dict[str, str]:
        token = get_identity_provider().issue(user)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
async def created_project(client, auth):
    """alice owns, bob is a member; tasks with 10 and 5 max points."""
    res = await client.post(
        "/api/v1/projects",
        json=project_payload(tasks=[task_payload(10), task_payload(5, offset=1)]),
        headers=auth("alice"),
    )
    assert res.status_code == 201, res.text
    return res.json()
