"""SQLAlchemy async engine and session management for the KPI database.

One engine per process, created by :func:`init_engine` at startup
(the CLI does this).  Sessions come from :func:`session_factory`.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from .models import Base

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_engine(
    url: str,
    *,
    pool_size: int = 5,
    echo: bool = False,
    use_null_pool: bool = False,
    create_tables: bool = False,
) -> AsyncEngine:
    """Initialise the module-level engine and session factory.

    Args:
        url: ``postgresql+asyncpg://`` connection URL.
        pool_size: Persistent connections kept in the pool.
        echo: Log every emitted SQL statement.
        use_null_pool: Disable pooling; for one-off CLI runs.
        create_tables: Run ``CREATE TABLE IF NOT EXISTS`` for all models
            (dev/test; production schemas come from Alembic).
    """
    global _engine, _session_factory  # noqa: PLW0603

    pool_kwargs: dict = {}
    if use_null_pool:
        pool_kwargs["poolclass"] = NullPool
    else:
        pool_kwargs["pool_size"] = pool_size

    _engine = create_async_engine(url, echo=echo, **pool_kwargs)
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    logger.info("Created async engine for %s", url.split("@")[-1])

    if create_tables:
        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created / verified.")

    return _engine


async def dispose() -> None:
    """Dispose of the module-level engine and release pooled connections."""
    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        await _engine.dispose()
        logger.info("Engine disposed.")
        _engine = None
        _session_factory = None


def session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the module-level session factory.

    Raises:
        RuntimeError: If :func:`init_engine` has not been called.
    """
    if _session_factory is None:
        raise RuntimeError(
            "Session factory not initialised. Call init_engine() first."
        )
    return _session_factory

