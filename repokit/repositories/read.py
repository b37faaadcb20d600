from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Callable, Iterable, Iterator, Optional, TypeVar

from sqlalchemy import Select, inspect, select
from sqlalchemy.exc import MultipleResultsFound
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from repokit.exceptions import NotFoundError
from .base import BaseRepository
from .interfaces import IReadRepository
from .keys import KeyField, key_field_from_accessor, resolve_key
from .predicates import build_equals_predicate, equals_by_key

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def _identity_arg(key: Any) -> Any:
    # Sequences are composite keys; session.get expects a tuple for those.
    if isinstance(key, (list, tuple)):
        return tuple(key)
    return key


class ReadRepository(BaseRepository, IReadRepository[T]):
    """
    Generic read repository over one mapped entity type.

    The repository wraps a composable ``Select`` (the view) over the entity
    type. By default the view is untracked: instances it loads are expunged
    from the session, so they come back as disconnected copies and changes
    made to them are never flushed. Instances that were already in the
    session before a query ran are left attached, which keeps staged
    in-memory changes intact across tracking switches.

    Two lookup paths are kept apart:
      - find/find_or_throw go through ``session.get`` and may be answered from
        the identity map without a round trip; they support composite keys.
      - get/get_or_throw always run a filtered query against the view, using
        the first primary key column only.

    Note:
      The repository owns the session passed in and closes it on close().
    """

    def __init__(
        self,
        session: AsyncSession,
        entity_type: type[T],
        *,
        key_accessor: Any = None,
        queryable: Optional[Select] = None,
        track_changes: bool = False,
    ) -> None:
        super().__init__(session)
        self.entity_type = entity_type
        self._key_accessor = key_accessor
        self._key: Optional[KeyField] = (
            key_field_from_accessor(key_accessor) if key_accessor is not None else None
        )
        self._statement: Select = select(entity_type)
        self._track_changes = False
        self.set_queryable(queryable if queryable is not None else select(entity_type), track_changes)

    # -- view configuration -------------------------------------------------

    @property
    def tracks_changes(self) -> bool:
        return self._track_changes

    def set_queryable(self, statement: Select, track_changes: bool = False) -> None:
        """
        Replace the view and set its tracking mode.

        Raises:
            TypeError: the statement does not select exactly this entity type.
        """
        descriptions = statement.column_descriptions
        if len(descriptions) != 1 or descriptions[0].get("type") is not self.entity_type:
            raise TypeError(
                f"Queryable must select {self.entity_type.__name__} entities only"
            )
        self._statement = statement
        self.set_tracking_behavior(track_changes)

    def set_tracking_behavior(self, tracking_enabled: bool) -> None:
        """Enable or disable change tracking for entities loaded by the view."""
        self._track_changes = bool(tracking_enabled)

    # -- queryable source ---------------------------------------------------

    @property
    def element_type(self) -> type:
        return self.entity_type

    @property
    def expression(self) -> Select:
        return self._statement

    @property
    def provider(self) -> AsyncSession:
        return self.session

    # -- key handling -------------------------------------------------------

    @property
    def key_field(self) -> KeyField:
        """Primary key descriptor, resolved on first use."""
        if self._key is None:
            self._key = resolve_key(self.entity_type)
        return self._key

    def key_predicate(self, key: Any) -> ColumnElement[bool]:
        if self._key_accessor is not None:
            return equals_by_key(self._key_accessor, key)
        return build_equals_predicate(self.entity_type, self.key_field.name, key)

    # -- lookups ------------------------------------------------------------

    async def find(self, key: Any) -> Optional[T]:
        self._ensure_open()
        logger.debug("find %s key=%r", self.entity_type.__name__, key)
        return await self.session.get(self.entity_type, _identity_arg(key))

    async def find_or_throw(self, key: Any) -> T:
        result = await self.find(key)
        if result is None:
            raise NotFoundError.for_entity(self.entity_type, key)
        return result

    async def get(self, key: Any) -> Optional[T]:
        predicate = self.key_predicate(key)
        logger.debug("get %s key=%r", self.entity_type.__name__, key)
        before = self._identity_snapshot()
        try:
            entity = await self.scalar_one_or_none(self._statement.where(predicate))
        except MultipleResultsFound:
            self._release_new(before)
            raise
        if entity is None:
            return None
        return self._release_loaded([entity], before)[0]

    async def get_or_throw(self, key: Any) -> T:
        result = await self.get(key)
        if result is None:
            raise NotFoundError.for_entity(self.entity_type, key, self.key_field.name)
        return result

    # -- enumeration --------------------------------------------------------

    async def all(self) -> list[T]:
        before = self._identity_snapshot()
        rows = list(await self.scalars(self._statement))
        return self._release_loaded(rows, before)

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        for entity in await self.all():
            yield entity

    def __iter__(self) -> Iterator[T]:
        """
        Synchronous enumeration.

        This performs blocking I/O through the session's synchronous facade,
        so it only works inside ``run_sync``.
        """
        self._ensure_open()
        before = self._identity_snapshot()
        rows = list(self.session.sync_session.scalars(self._statement))
        return iter(self._release_loaded(rows, before))

    async def run_sync(self, fn: Callable[["ReadRepository[T]"], R]) -> R:
        """Call ``fn(self)`` where synchronous enumeration is allowed."""
        self._ensure_open()
        return await self.session.run_sync(lambda _session: fn(self))

    # -- tracking -----------------------------------------------------------

    def _identity_snapshot(self) -> set:
        if self._track_changes:
            return set()
        return set(self.session.sync_session.identity_map.keys())

    def _release_loaded(self, entities: Iterable[T], before: set) -> list[T]:
        entities = list(entities)
        if self._track_changes:
            return entities
        for entity in entities:
            if inspect(entity).key not in before and entity in self.session:
                self.session.expunge(entity)
        return entities

    def _release_new(self, before: set) -> None:
        # Used when a query fails after loading rows the caller never sees.
        if self._track_changes:
            return
        identity_map = self.session.sync_session.identity_map
        for identity in set(identity_map.keys()) - before:
            entity = identity_map.get(identity)
            if entity is not None:
                self.session.expunge(entity)
