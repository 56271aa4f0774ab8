"""Alembic environment configuration for Airfeed."""
import asyncio
import os
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel

# Load local .env file when present so local migrations work without manual exports.
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path, override=False)

from airfeed.utils.db_async import _prepare_asyncpg_connection, import_tables  # noqa: E402

# Import models so SQLModel metadata is populated.
import_tables()

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

RAW_DB_URL = os.getenv("DATABASE_URL")
if not RAW_DB_URL:
    raise RuntimeError("DATABASE_URL is required for Alembic migrations")

# sslmode and channel_binding are folded into asyncpg connect args
DB_URL, CONNECT_ARGS = _prepare_asyncpg_connection(RAW_DB_URL)

config.set_main_option("sqlalchemy.url", DB_URL.replace("%", "%%"))

target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=DB_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable: AsyncEngine = create_async_engine(
        DB_URL,
        poolclass=pool.NullPool,
        connect_args=CONNECT_ARGS,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
