from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base

from config import settings

SQLITE_PREFIX = "sqlite:///"
ASYNC_SQLITE_PREFIX = "sqlite+aiosqlite:///"


def _async_url(url: str) -> str:
    """Point a plain sqlite URL at the aiosqlite driver; other URLs pass through."""
    if url.startswith(SQLITE_PREFIX):
        return ASYNC_SQLITE_PREFIX + url[len(SQLITE_PREFIX):]
    return url


def _ensure_sqlite_dir(url: str) -> None:
    """Create the parent directory of a relative SQLite file path."""
    for prefix in (SQLITE_PREFIX, ASYNC_SQLITE_PREFIX):
        if url.startswith(prefix):
            path = url[len(prefix):]
            if path.startswith("./"):
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            return


_ensure_sqlite_dir(settings.DATABASE_URL)

engine = create_async_engine(
    _async_url(settings.DATABASE_URL),
    echo=False,
    future=True,
)

# One session per request; sites, assignments and device records share it
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    future=True,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting a request-scoped database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Create the sites, assigned_ips and ip_checks tables if missing."""
    # Import models so every table is registered on Base.metadata
    import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Dispose of the engine's connection pool."""
    await engine.dispose()
