"""
Alembic Migration Environment
==============================

What:  Runs AtlasPM migrations through the async engine.
How:   The URL comes from atlaspm settings (DATABASE_URL), not alembic.ini,
       so the app and its migrations always target the same database.

Usage (from backend/):
    alembic upgrade head
    alembic revision --autogenerate -m "add project deadline"
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from atlaspm.config import settings
from atlaspm.database import Base

# Models register their tables on Base.metadata when imported
from atlaspm.models.activity import Activity  # noqa: F401
from atlaspm.models.client import Client  # noqa: F401
from atlaspm.models.project import Project  # noqa: F401
from atlaspm.models.proposal import Proposal  # noqa: F401
from atlaspm.models.role import Role  # noqa: F401
from atlaspm.models.timesheet import Timesheet  # noqa: F401
from atlaspm.models.user import AppUser  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

config.set_main_option("sqlalchemy.url", settings.database_url)


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting (`alembic upgrade head --sql`)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
