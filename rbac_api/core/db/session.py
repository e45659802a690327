from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from typing import Any, AsyncGenerator, Dict

from rbac_api.core.config import DATABASE_URL, DB_ECHO, MAX_CONNECTIONS_COUNT, MIN_CONNECTIONS_COUNT


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Pool settings for the engine. SQLite does not use a QueuePool, so it gets none.
    """
    options: Dict[str, Any] = {"echo": DB_ECHO}
    if make_url(database_url).get_backend_name() == "sqlite":
        return options
    pool_size = max(MIN_CONNECTIONS_COUNT, 1)
    options["pool_size"] = pool_size
    options["max_overflow"] = max(MAX_CONNECTIONS_COUNT - pool_size, 0)
    options["pool_pre_ping"] = True
    return options


engine = create_async_engine(DATABASE_URL, **engine_options(DATABASE_URL))

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
