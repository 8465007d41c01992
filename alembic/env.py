"""
Alembic environment for BrainDump.

The connection URL comes from the app settings (DATABASE_URL, or
SUPABASE_URL + SUPABASE_PASSWORD). Pass ``-x database_url=...`` to
migrate another database, e.g. the one in TEST_DATABASE_URL.

Only the ``public`` schema is compared on autogenerate; everything
Supabase manages (auth, storage, realtime, ...) is left alone.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

from braindump.config.settings import settings
from braindump.infrastructure.db.database import build_database_url

# Registers profiles and brain_dumps on SQLModel.metadata
from braindump.infrastructure.db.models import BrainDump, Profile  # noqa: F401


config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata

MANAGED_SCHEMAS = {None, "public"}


def database_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("database_url")
    if override:
        if override.startswith(("postgresql://", "postgres://")):
            override = "postgresql+asyncpg://" + override.split("://", 1)[1]
        return override
    return build_database_url(settings)


def include_name(name, type_, parent_names) -> bool:
    """Reflect only the public schema."""
    if type_ == "schema":
        return name in MANAGED_SCHEMAS
    return True


def configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_name=include_name,
        include_schemas=False,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    configure(
        url=database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_sync_migrations(connection: Connection) -> None:
    configure(connection=connection, compare_server_default=True)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(run_sync_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
