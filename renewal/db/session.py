"""
Async engine and the per-request session.

PostgreSQL through asyncpg in production; SQLite through aiosqlite for
local runs, where pool sizing options are not accepted.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from renewal.core.config import settings

POOL_OPTIONS = {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}

engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DEBUG,
    **({} if settings.is_sqlite else POOL_OPTIONS),
)

# Rows stay readable after commit: the webhook commits, then renders the
# renewed company for the realtime event.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request.

    Committed when the route returns normally, rolled back when it raises,
    so a payment is never marked paid without its due-date extension.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
