from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from libs.db.config import AsyncSessionLocal


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an async database session, closed when the caller is done.

    Used as a FastAPI dependency and by background tasks via ``async for``.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
