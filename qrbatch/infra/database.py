"""Async database configuration with tenant-scoped sessions.

Provides:
- Async SQLAlchemy engine and session factory
- Tenant scope setter for row level security on PostgreSQL
- One transaction per session: commit on success, rollback on any error
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from qrbatch.config import settings
from qrbatch.core.tenant_scope import set_tenant_scope
from qrbatch.infra.logging import get_logger

logger = get_logger(__name__)

# Type alias for dependency injection
DatabaseSession = AsyncSession

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the async database engine."""
    global _engine

    if _engine is None:
        url = settings.database_url
        engine_kwargs: dict[str, Any] = {"echo": settings.debug}

        if url.startswith("postgresql"):
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_pool_max_overflow,
                pool_pre_ping=True,  # Verify connections before use
                pool_recycle=1800,  # Recycle connections after 30 min
            )

        logger.info(
            "Creating database engine",
            dialect=url.split(":", 1)[0],
            pool_size=engine_kwargs.get("pool_size"),
            max_overflow=engine_kwargs.get("max_overflow"),
        )
        _engine = create_async_engine(url, **engine_kwargs)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _session_factory


@asynccontextmanager
async def get_db_session(tenant_id: str | None = None) -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session with optional tenant scope.

    The whole block runs in one transaction. Everything written inside it is
    committed together when the block exits normally and rolled back if any
    exception escapes, so callers never leave a half-written batch behind.

    Args:
        tenant_id: Tenant ID for RLS isolation. If provided, sets the
                  `app.current_tenant` setting for the transaction.

    Yields:
        AsyncSession with tenant context set

    Example:
        async with get_db_session(tenant_id="tenant-123") as session:
            batch = await session.get(Batch, batch_id)
    """
    factory = get_session_factory()
    session = factory()

    try:
        if tenant_id:
            await set_tenant_scope(session, tenant_id)

        yield session
        await session.commit()

    except Exception as e:
        await session.rollback()
        logger.error(
            "Database session rolled back",
            error=str(e),
            error_type=type(e).__name__,
            tenant_id=tenant_id,
        )
        raise

    finally:
        await session.close()


async def create_all_tables() -> None:
    """Create tables for every registered model (local development and tests)."""
    from qrbatch.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db_engine() -> None:
    """Close the database engine and all connections.

    Call this during application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        logger.info("Closing database engine")
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def verify_db_connection() -> bool:
    """Verify database connectivity.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        async with get_db_session() as session:
            await session.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
    except Exception as e:
        logger.error("Database connection failed", error=str(e))
        return False
