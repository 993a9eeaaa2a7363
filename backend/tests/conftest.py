"""
AtlasPM Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for pure unit tests
    ├── database:        Database over a fresh SQLite file, tables created
    ├── session:         One AsyncSession on that database
    ├── seed:            Two clients, two roles, one activity, two users
    └── test_client:     HTTPX AsyncClient over an app serving `database`

SQLite runs with foreign keys enabled and supports ON CONFLICT DO NOTHING
and UPDATE ... RETURNING, so the update protocol runs unmodified.
"""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

# Override settings for testing BEFORE any atlaspm imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./atlaspm_test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["DB_TIMEOUT_SECONDS"] = "10"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from atlaspm.database import Database
from atlaspm.schemas.activity import ActivityCreate
from atlaspm.schemas.client import ClientCreate
from atlaspm.schemas.role import RoleCreate
from atlaspm.schemas.user import UserCreate
from atlaspm.services.activity_service import activity_service
from atlaspm.services.client_service import client_service
from atlaspm.services.role_service import role_service
from atlaspm.services.user_service import user_service


# ══════════════════════════════════════════════════════════════════════════
# Unit-test doubles
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    `await session.begin()` hands back `session.tx`, so orchestrator tests
    can assert on commit/rollback.
    """
    tx = AsyncMock()
    session = AsyncMock()
    session.tx = tx
    session.begin = AsyncMock(return_value=tx)
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Real database (SQLite)
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'atlaspm.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest_asyncio.fixture
async def seed(database):
    """
    Reference rows most project/timesheet tests need.

    Returns a namespace with acme, skynet, surveyor, manager, fieldwork,
    ada and alan (users).
    """
    async with database.session() as db:
        acme = await client_service.create_client(db, ClientCreate(name="Acme"))
        skynet = await client_service.create_client(db, ClientCreate(name="Skynet"))
        surveyor = await role_service.create_role(db, RoleCreate(name="Surveyor"))
        manager = await role_service.create_role(db, RoleCreate(name="Project Manager"))
        fieldwork = await activity_service.create_activity(db, ActivityCreate(name="Fieldwork"))
        ada = await user_service.create_user(
            db,
            UserCreate(
                email="ada@example.com",
                first_name="Ada",
                last_name="Lovelace",
                password="correct horse battery",
            ),
        )
        alan = await user_service.create_user(
            db,
            UserCreate(
                email="alan@example.com",
                first_name="Alan",
                last_name="Turing",
                password="enigma machine 42",
            ),
        )
    return SimpleNamespace(
        acme=acme,
        skynet=skynet,
        surveyor=surveyor,
        manager=manager,
        fieldwork=fieldwork,
        ada=ada,
        alan=alan,
    )


@pytest_asyncio.fixture
async def test_client(database):
    """
    HTTPX AsyncClient talking to an app that serves `database`.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from atlaspm.main import create_app

    app = create_app(database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
