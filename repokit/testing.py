"""
Helpers for test doubles of read repositories.

    repo = MagicMock(spec=IReadRepository)
    setup_data(repo, [User(id=1, name="ada")])

    assert [u.name async for u in repo] == ["ada"]
    assert await repo.all() == [...]

A configured double exposes the same element type, expression and provider a
real repository over that data would, and both enumeration paths restart from
the first item on every new iteration.
"""
from __future__ import annotations

from typing import Any, AsyncIterator, Generic, Iterable, Iterator, Optional, TypeVar
from unittest.mock import MagicMock

from sqlalchemy import Select, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapper

T = TypeVar("T")


class InMemoryQueryable(Generic[T]):
    """A finite, restartable queryable source over a list of entities."""

    def __init__(self, items: Iterable[T], element_type: type) -> None:
        self.items = list(items)
        self.element_type = element_type
        # Stands in for the session a real repository hands out.
        self.provider = MagicMock(spec=AsyncSession)

    @property
    def expression(self) -> Optional[Select]:
        if isinstance(inspect(self.element_type, raiseerr=False), Mapper):
            return select(self.element_type)
        return None

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    async def _iterate(self) -> AsyncIterator[T]:
        for item in self.items:
            yield item

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    def __len__(self) -> int:
        return len(self.items)


# PUBLIC_INTERFACE
def setup_data(repo: Any, items: Iterable[T], element_type: Optional[type] = None) -> Any:
    """
    Configure a ``unittest.mock`` double of IReadRepository to serve ``items``.

    ``element_type`` defaults to the type of the first item; pass it
    explicitly for an empty sequence.
    """
    items = list(items)
    source = InMemoryQueryable(items, element_type or _infer_type(items))

    repo.element_type = source.element_type
    repo.expression = source.expression
    repo.provider = source.provider
    repo.__iter__.side_effect = lambda: iter(source)
    # A list return value is re-wrapped on every ``async for``.
    repo.__aiter__.return_value = source.items
    repo.all.return_value = list(source.items)
    return repo


# PUBLIC_INTERFACE
def setup_empty_data(repo: Any, element_type: type = object) -> Any:
    """Configure a double that enumerates nothing."""
    return setup_data(repo, [], element_type)


def _infer_type(items: list) -> type:
    return type(items[0]) if items else object
