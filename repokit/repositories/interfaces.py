"""
Capability interfaces used for registry bindings.

A read and a write repository for the same entity type are bound under
different capabilities, so registering both never conflicts.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Generic, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")


class IReadRepository(ABC, Generic[T]):
    """Read capability. Also usable wherever a queryable source is expected."""

    @property
    @abstractmethod
    def element_type(self) -> type:
        """Entity type produced by this source."""

    @property
    @abstractmethod
    def expression(self) -> Any:
        """Composable statement behind this source."""

    @property
    @abstractmethod
    def provider(self) -> Any:
        """Object that executes the expression."""

    @abstractmethod
    async def find(self, key: Any) -> Optional[T]:
        """Look an entity up by key through the session identity map."""

    @abstractmethod
    async def find_or_throw(self, key: Any) -> T:
        """As find, raising NotFoundError on a miss."""

    @abstractmethod
    async def get(self, key: Any) -> Optional[T]:
        """Query the view for the entity whose primary key equals key."""

    @abstractmethod
    async def get_or_throw(self, key: Any) -> T:
        """As get, raising NotFoundError on a miss."""

    @abstractmethod
    async def all(self) -> list[T]:
        """Materialize the current view."""

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[T]:
        ...

    @abstractmethod
    def __iter__(self) -> Iterator[T]:
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the owned session."""


class IWriteRepository(IReadRepository[T]):
    """Write capability. Every mutation commits before returning."""

    @abstractmethod
    async def add(self, entity: T) -> T:
        ...

    @abstractmethod
    async def add_many(self, entities: Iterable[T]) -> list[T]:
        ...

    @abstractmethod
    async def update(self, entity: T) -> T:
        ...

    @abstractmethod
    async def update_many(self, entities: Iterable[T]) -> list[T]:
        ...

    @abstractmethod
    async def delete(self, entity: T) -> None:
        ...

    @abstractmethod
    async def delete_by_key(self, key: Any) -> None:
        ...

    @abstractmethod
    async def delete_many(self, entities: Iterable[T]) -> None:
        ...
