"""
Database access for the DreamCut result tables

Role:
    - One process-wide async engine (asyncpg) shared by the refiner and script routers
    - Request-scoped sessions: commit on success, rollback on error
    - Optional table creation at startup for local runs (AUTO_CREATE_SCHEMA=true)

Alembic owns the schema in every other environment (see migrations/).
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from backend.src.common.config import DB_CONFIG
from backend.src.common.models.base import Base


logger = logging.getLogger(__name__)


def resolve_database_url() -> str:
    """asyncpg URL from DATABASE_URL, or from the PG_* settings when it is unset."""
    url = DB_CONFIG["url"]
    if url:
        # plain postgres:// URLs from hosting providers need the async driver
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://") :]
        if url.startswith("postgresql://"):
            url = "postgresql+asyncpg://" + url[len("postgresql://") :]
        return url

    return (
        f"postgresql+asyncpg://{DB_CONFIG['user']}:{DB_CONFIG['password']}"
        f"@{DB_CONFIG['host']}:{DB_CONFIG['port']}/{DB_CONFIG['database']}"
    )


DATABASE_URL = resolve_database_url()


class AsyncDatabaseEngine:
    """Lazily created engine + session factory, shared across the process."""

    _instance: Optional["AsyncDatabaseEngine"] = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._engine = None
            instance._session_factory = None
            cls._instance = instance
        return cls._instance

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(
                DATABASE_URL,
                echo=DB_CONFIG["echo"],
                pool_pre_ping=True,
                pool_size=DB_CONFIG["pool_size"],
                max_overflow=DB_CONFIG["max_overflow"],
            )
            self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False, autoflush=False)
            logger.info(f"🗄️ [Database] Engine created for {make_url(DATABASE_URL).render_as_string(hide_password=True)}")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            _ = self.engine
        return self._session_factory

    async def initialize(self) -> None:
        """Startup hook: check connectivity and create tables when AUTO_CREATE_SCHEMA is set."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("🗄️ [Database] Connection check passed")
        except Exception as e:
            # the API still serves /info and HEAD health without a database
            logger.warning(f"🗄️ [Database] Connection check failed, requests will retry: {e}")
            return

        if DB_CONFIG["auto_create_schema"]:
            logger.warning("🗄️ [Database] AUTO_CREATE_SCHEMA is on, creating result tables from models")
            await ensure_schema()

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """async with AsyncDatabaseEngine().get_session() as session: ..."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("🗄️ [Database] Engine disposed")


async def ensure_schema(reset: bool = False) -> None:
    """
    Create dreamcut_refiner and script_enhancer_results straight from the models.

    Args:
        reset: drop the tables first (local development only)
    """
    # model imports register the tables on Base.metadata
    from backend.src.refiner import models as refiner_models  # noqa: F401
    from backend.src.script import models as script_models  # noqa: F401

    async with AsyncDatabaseEngine().engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"🗄️ [Database] Schema ready ({', '.join(sorted(Base.metadata.tables))})")
