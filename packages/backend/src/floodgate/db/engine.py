"""Async SQLAlchemy engine and session factory for the users database.

Learn: SQLAlchemy 2.0 async mode. The default URL points at a SQLite file
(aiosqlite driver) under `db_path`, next to the per-user settings stores;
any async URL works via FLOODGATE_DATABASE_URL.
"""

from pathlib import Path

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from floodgate.config import settings
from floodgate.db.models import Base

# echo=True in debug to see SQL queries.
engine = create_async_engine(settings.users_database_url, echo=settings.debug)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create the users table if missing (and the SQLite directory)."""
    url = bind.url
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
