from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from sqlalchemy import Executable
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class BaseRepository:
    """
    Base class for repositories providing common session helpers.

    A repository owns its session: closing the repository closes the session,
    exactly once. Sessions are not safe for concurrent use, so scope one
    repository per unit of work (e.g. per request).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"{type(self).__name__} has been closed")

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        self._ensure_open()
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def commit(self) -> None:
        """
        Commit current transaction.

        Any failure while committing, cancellation included, rolls the session
        back before the error propagates so no partial commit is left staged.
        """
        self._ensure_open()
        try:
            await self.session.commit()
        except BaseException:
            logger.warning("Commit failed; rolling back session")
            await self.session.rollback()
            raise

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self._ensure_open()
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self._ensure_open()
        self.session.add(entity)

    async def close(self) -> None:
        """Close the owned session. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self.session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
