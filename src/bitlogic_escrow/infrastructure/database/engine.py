"""Async database engine and session factory construction.

Provides:
    - build_engine: An AsyncEngine for a database URL.
    - build_session_factory: An async_sessionmaker bound to an engine.
    - init_models: Create tables (development and tests; use migrations in production).

SQLite URLs get a StaticPool when in-memory so every session shares one
database; server databases get a pre-pinged connection pool.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from bitlogic_escrow.logging_config import get_logger

logger = get_logger(__name__)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine suited to the database behind ``database_url``."""
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs = {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}

    engine = create_async_engine(database_url, echo=echo, **kwargs)
    logger.info("database.engine_created", dialect=engine.dialect.name)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables if they don't exist."""
    from bitlogic_escrow.infrastructure.database.orm_models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database.tables_created")
