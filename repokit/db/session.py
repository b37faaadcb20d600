from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from repokit.core.settings import get_settings

logger = logging.getLogger(__name__)

_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None


def _ensure_engine_initialized() -> None:
    """
    Lazily initialize the AsyncEngine and session maker.
    """
    global _ENGINE, _SESSION_MAKER
    settings = get_settings()
    if _ENGINE is None:
        url = settings.async_database_url
        options = {"echo": settings.SQL_ECHO}
        if url.startswith("sqlite") and ":memory:" in url:
            # One shared connection, otherwise every checkout sees an empty database
            options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        else:
            options.update(pool_pre_ping=True)
        _ENGINE = create_async_engine(url, **options)
        logger.info("Created async engine for %s", _ENGINE.url.render_as_string(hide_password=True))
    if _SESSION_MAKER is None:
        _SESSION_MAKER = async_sessionmaker(
            bind=_ENGINE,
            expire_on_commit=settings.EXPIRE_ON_COMMIT,
            autoflush=False,
            autocommit=False,
        )


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the global session factory, usable as a registry scope factory."""
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession suitable for FastAPI dependency injection.
    Ensures engine/session factory is initialized.
    """
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager yielding a session that is rolled back on error
    and always closed.

    Usage:
        async with session_scope() as session:
            repo = WriteRepository(session, User)
            ...
    """
    session = get_session_maker()()
    try:
        yield session
    except BaseException:
        await session.rollback()
        raise
    finally:
        await session.close()


# PUBLIC_INTERFACE
async def dispose_engine() -> None:
    """Dispose the global engine and forget the session factory."""
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None
