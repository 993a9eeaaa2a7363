"""
AtlasPM Backend — Database Handle & Session Management
=======================================================

What:  The `Database` handle (async engine + session factory), the ORM base
       class, and the FastAPI session dependency.
Why:   One object owns the connection pool and is passed explicitly to
       whoever needs it. Nothing in the package reaches for a global engine,
       so tests can build as many isolated databases as they like.
How:   `create_app()` builds a `Database` and stores it on `app.state.db`.
       `get_db_session()` pulls it back off the request for each call.
Who:   The app factory, route dependencies, the health check, and tests.
When:  Created once per application instance; sessions are per request.

Connection Pooling Strategy (PostgreSQL):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

SQLite (tests only):
    Pool options are skipped and `PRAGMA foreign_keys=ON` is issued on every
    new connection, otherwise join-table cascades and FK checks are inert.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from atlaspm.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for migrations and
    the test suite uses for `create_all`.
    """
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Explicit handle over one async engine and its session factory.

    Attributes:
        engine:           The AsyncEngine owning the connection pool
        session_factory:  async_sessionmaker producing AsyncSession objects
    """

    def __init__(self, url: str, config: Optional[Settings] = None, **engine_kwargs: Any):
        cfg = config or default_settings
        self.url = url

        options: Dict[str, Any] = {"echo": cfg.log_level == "DEBUG"}
        if not url.startswith("sqlite"):
            options.update(
                pool_size=cfg.db_pool_size,
                max_overflow=cfg.db_max_overflow,
                pool_pre_ping=cfg.db_pool_pre_ping,
                pool_recycle=3600,
            )
        options.update(engine_kwargs)

        self.engine: AsyncEngine = create_async_engine(url, **options)
        if url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        # expire_on_commit=False: objects stay readable after the transaction
        # block commits, which the services rely on when building responses
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "Database":
        cfg = config or default_settings
        return cls(cfg.database_url, config=cfg)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yields a session and always closes it; rollback on error."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        """Runs SELECT 1. Raises whatever the driver raises."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """Creates every table known to `Base.metadata` (tests and local dev)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Closes all pooled connections (application shutdown)."""
        await self.engine.dispose()
        logger.info("Database engine disposed")


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Looks up the Database handle stored on the application
        2. Yields a fresh session to the route handler
        3. On error: rolls back whatever the session still holds
        4. Always: closes the session (returns connection to pool)

    Transactions are opened by the services themselves (one
    `session.begin()` block per operation), so nothing is committed here.
    """
    db: Database = request.app.state.db
    async with db.session() as session:
        yield session
