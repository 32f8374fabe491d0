"""Shared SQLAlchemy base, async engine and session factory.

The content store talks to a single PostgreSQL database through one pool.
Tables are created with ``Base.metadata.create_all``; there is no migration
tooling.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db(url: str | None = None, create_tables: bool = True) -> None:
    """Create the engine and session factory once per process.

    Args:
        url: Database URL override (tests, CLI). Defaults to Settings.database_url.
        create_tables: Run ``create_all`` for every model in app.db.models.
    """
    global _engine, _session_factory

    if _engine is not None:
        return

    settings = get_settings()
    _engine = create_async_engine(url or settings.database_url, echo=settings.debug, pool_pre_ping=True)
    _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)

    if create_tables:
        # Populate Base.metadata before create_all
        import app.db.models  # noqa: F401

        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and release all pooled connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the configured session factory.

    Raises RuntimeError if init_db() has not been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


async def ping() -> None:
    """Round-trip a trivial query. Raises on any connection problem."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))
