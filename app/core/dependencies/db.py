from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import AsyncSessionLocal


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a fresh session per request and close it afterwards.

    Handlers open their own transactions with ``async with session.begin():``.

    Yields:
        AsyncSession: The request's session.
    """
    async with AsyncSessionLocal() as async_session:
        yield async_session
