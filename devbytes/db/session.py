"""SQLAlchemy async engine and session factories."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from devbytes.config import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async database engine for the configured URL."""
    url = settings.database_url
    # Ensure SQLite URLs use async driver
    if url.startswith("sqlite:///"):
        url = url.replace("sqlite:///", "sqlite+aiosqlite:///")
    return create_async_engine(url, future=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session maker bound to ``engine``."""
    return async_sessionmaker(engine, expire_on_commit=False)
