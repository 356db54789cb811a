from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import AsyncSessionLocal


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield one session per request.

    Key management and the usage meter commit their own writes. Anything
    still pending when the request ends is rolled back as the session closes.

    Yields:
        AsyncSession bound to the configured database.
    """
    async with AsyncSessionLocal() as session:
        yield session
