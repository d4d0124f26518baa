"""Async SQLAlchemy session utilities."""

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from cart_recovery.core.config import settings

T = TypeVar("T")

SessionFactory = async_sessionmaker[AsyncSession]

# aiosqlite connections are bound to a worker thread; pooling them across
# event loops (Celery's asyncio.run, pytest) is not safe.
engine_kwargs: dict[str, Any] = {"pool_pre_ping": True}
if settings.ASYNC_DATABASE_URL.startswith("sqlite"):
    engine_kwargs = {"poolclass": NullPool}

async_engine: AsyncEngine = create_async_engine(
    settings.ASYNC_DATABASE_URL,
    **engine_kwargs,
)

AsyncSessionLocal: SessionFactory = async_sessionmaker(
    bind=async_engine,
    expire_on_commit=False,
    autoflush=False,
)


async def get_async_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an AsyncSession."""
    async with AsyncSessionLocal() as session:
        yield session


async def run_in_transaction(
    operation: Callable[[AsyncSession], Awaitable[T]],
    session_factory: SessionFactory | None = None,
) -> T:
    """Execute an async operation within a managed transaction."""
    factory = session_factory or AsyncSessionLocal
    async with factory() as session:
        try:
            result = await operation(session)
            await session.commit()
            return result
        except Exception:
            await session.rollback()
            raise
