"""Common async session helpers."""
from sqlalchemy.ext.asyncio import AsyncSession


async def flush_async(session: AsyncSession) -> None:
    """Flush pending changes so generated ids are populated."""
    await session.flush()
