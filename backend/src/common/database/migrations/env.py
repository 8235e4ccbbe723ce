"""
Alembic environment for the DreamCut result tables.

    alembic upgrade head            # apply
    alembic upgrade head --sql      # print SQL only (offline)

The URL always comes from backend.src.common.config (DATABASE_URL or PG_*),
never from alembic.ini.
"""

import asyncio
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

# env.py lives five levels below the project root
sys.path.insert(0, str(Path(__file__).resolve().parents[5]))

from backend.src.common.database.connection import DATABASE_URL  # noqa: E402
from backend.src.common.models.base import Base  # noqa: E402
from backend.src.refiner import models as refiner_models  # noqa: E402,F401
from backend.src.script import models as script_models  # noqa: E402,F401


if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

target_metadata = Base.metadata


def _configure_and_run(**options) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **options)
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure_and_run(connection=connection)


async def _run_online() -> None:
    # NullPool: a migration run opens exactly one connection
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure_and_run(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_run_online())
