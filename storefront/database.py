from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from storefront.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    if settings.is_sqlite:
        # Local development and tests; SQLite has no connection pool to tune
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "connect_args": {"connect_timeout": 30},
    }


engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DEBUG,
    **_engine_options(),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by every storefront table."""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Commits leftovers on success, always released."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def transaction(session: AsyncSession):
    """
    Run a unit of work on an existing session.

    Commits when the block exits normally and rolls back on any exception,
    which is re-raised. Multi-row invariants (tracking cascades, default
    address transfer) must be written inside one of these blocks.

    Usage:
        async with transaction(self.db):
            ...
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise


async def init_db() -> None:
    """Create missing tables. Schema changes beyond that are applied by hand."""
    from storefront import models  # noqa: F401  registers every table

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({len(Base.metadata.tables)} tables)")
