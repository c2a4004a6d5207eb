from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    async_sessionmaker,
    AsyncAttrs,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import database_logger, settings

ASYNC_SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def _engine_options(database_url: str) -> dict[str, Any]:
    """
    Build connection pool options for the given database URL.

    SQLite (used for tests and local runs) does not accept pool sizing
    arguments, so they are only applied to server databases.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_size": 20,
        "max_overflow": 30,
        "pool_pre_ping": True,  # Validate connections before use
        "pool_recycle": 3600,
    }


async_engine: AsyncEngine = create_async_engine(
    ASYNC_SQLALCHEMY_DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(ASYNC_SQLALCHEMY_DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    autoflush=False,
    expire_on_commit=False,
    autobegin=True,
)


class Base(AsyncAttrs, DeclarativeBase):
    pass


async def init_db() -> None:
    """
    Create every table registered on ``Base.metadata``.

    Returns:
        None
    """
    # Models must be imported so their tables are registered
    import app.core.db.models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    database_logger.info("Database tables created")


async def dispose_db() -> None:
    """Dispose the engine and close pooled connections."""
    await async_engine.dispose()
    database_logger.info("Database engine disposed")
