from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Iterable, Iterator, Optional, TypeVar

from sqlalchemy import Select, inspect
from sqlalchemy.ext.asyncio import AsyncSession

from repokit.exceptions import NotFoundError
from .interfaces import IWriteRepository
from .keys import KeyField, get_key_value
from .read import ReadRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WriteRepository(IWriteRepository[T]):
    """
    Generic read/write repository over one mapped entity type.

    Reads are delegated to an embedded ReadRepository whose view is always
    tracked, so loaded entities can be modified in place and removed. Each
    mutating call commits before returning; there is no unit of work spanning
    several calls.
    """

    def __init__(
        self,
        session: AsyncSession,
        entity_type: type[T],
        *,
        key_accessor: Any = None,
        queryable: Optional[Select] = None,
    ) -> None:
        self.reader: ReadRepository[T] = ReadRepository(
            session,
            entity_type,
            key_accessor=key_accessor,
            queryable=queryable,
            track_changes=True,
        )

    @property
    def session(self) -> AsyncSession:
        return self.reader.session

    @property
    def entity_type(self) -> type[T]:
        return self.reader.entity_type

    @property
    def key_field(self) -> KeyField:
        return self.reader.key_field

    @property
    def closed(self) -> bool:
        return self.reader.closed

    def set_queryable(self, statement: Select) -> None:
        """Replace the view. Write repositories always track changes."""
        self.reader.set_queryable(statement, True)

    # -- read capability ----------------------------------------------------

    @property
    def element_type(self) -> type:
        return self.reader.element_type

    @property
    def expression(self) -> Select:
        return self.reader.expression

    @property
    def provider(self) -> AsyncSession:
        return self.reader.provider

    async def find(self, key: Any) -> Optional[T]:
        return await self.reader.find(key)

    async def find_or_throw(self, key: Any) -> T:
        return await self.reader.find_or_throw(key)

    async def get(self, key: Any) -> Optional[T]:
        return await self.reader.get(key)

    async def get_or_throw(self, key: Any) -> T:
        return await self.reader.get_or_throw(key)

    async def all(self) -> list[T]:
        return await self.reader.all()

    def __aiter__(self) -> AsyncIterator[T]:
        return self.reader.__aiter__()

    def __iter__(self) -> Iterator[T]:
        return iter(self.reader)

    async def run_sync(self, fn):
        self.reader._ensure_open()
        return await self.session.run_sync(lambda _session: fn(self))

    async def close(self) -> None:
        await self.reader.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # -- mutations ----------------------------------------------------------

    async def add(self, entity: T) -> T:
        await self.reader.add(entity)
        await self.reader.commit()
        await self._reload([entity])
        logger.debug("Added %s", self.entity_type.__name__)
        return entity

    async def add_many(self, entities: Iterable[T]) -> list[T]:
        items = list(entities)
        if not items:
            return []
        await self.reader.add_all(items)
        await self.reader.commit()
        await self._reload(items)
        logger.debug("Added %d %s entities", len(items), self.entity_type.__name__)
        return items

    async def update(self, entity: T) -> T:
        return (await self.update_many([entity]))[0]

    async def update_many(self, entities: Iterable[T]) -> list[T]:
        items = list(entities)
        if not items:
            return []
        attached = await self._attach_all(items)
        await self.reader.commit()
        await self._reload(attached)
        logger.debug("Updated %d %s entities", len(attached), self.entity_type.__name__)
        return attached

    async def delete(self, entity: T) -> None:
        await self.delete_many([entity])

    async def delete_by_key(self, key: Any) -> None:
        entity = await self.find_or_throw(key)
        await self.delete(entity)

    async def delete_many(self, entities: Iterable[T]) -> None:
        items = await self._attach_all(list(entities))
        for item in items:
            await self.session.delete(item)
        await self.reader.commit()
        logger.debug("Deleted %d %s entities", len(items), self.entity_type.__name__)

    async def _attach_all(self, entities: list[T]) -> list[T]:
        # Nothing from a batch stays staged when one of its entities fails.
        try:
            return [await self._attach(entity) for entity in entities]
        except BaseException:
            await self.session.rollback()
            raise

    async def _attach(self, entity: T) -> T:
        """
        Return a session-bound instance for ``entity``.

        Detached and transient instances are merged onto their persistent
        row, which must exist.

        Raises:
            MissingKeyValueError: the entity has no key value.
            NotFoundError: no row has the entity's key.
        """
        self.reader._ensure_open()
        if entity in self.session:
            return entity
        key = get_key_value(entity, self.key_field)
        identity = tuple(inspect(self.entity_type).primary_key_from_instance(entity))
        if await self.session.get(self.entity_type, identity) is None:
            raise NotFoundError.for_entity(
                self.entity_type,
                key if len(identity) == 1 else list(identity),
                self.key_field.name,
            )
        return await self.session.merge(entity)

    async def _reload(self, entities: Iterable[T]) -> None:
        # Committed instances are expired when the session expires on commit;
        # loading them here keeps attribute access free of implicit IO.
        if self.session.sync_session.expire_on_commit:
            for entity in entities:
                await self.session.refresh(entity)
