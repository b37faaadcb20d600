"""
Context descriptors: classes that declare which entity collections exist.

    class ShopContext(DataContext):
        users: EntitySet[User]
        orders: EntitySet[Order]

The declarations are what the repository registry discovers entity types from.
On an instance, each declared collection evaluates to a fresh ``select(...)``.
"""
from __future__ import annotations

from typing import Any, Generic, Iterable, Optional, Tuple, TypeVar, get_args, get_origin, get_type_hints

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class EntitySet(Generic[T]):
    """
    Marker for an entity collection on a DataContext.

    Use it as an annotation (``users: EntitySet[User]``) or as an explicit
    attribute (``users = EntitySet(User)``).
    """

    def __init__(self, entity_type: Optional[type] = None) -> None:
        self.entity_type = entity_type

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        return instance.set(self.entity_type)


class DataContext:
    """Base class for context descriptors, bound to one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def set(self, entity_type: type[T]) -> Select:
        """Return a composable query over one entity collection."""
        return select(entity_type)

    def __getattr__(self, name: str) -> Any:
        sets = entity_sets(type(self))
        if name in sets:
            return self.set(sets[name])
        raise AttributeError(name)


# PUBLIC_INTERFACE
def entity_sets(context_type: type) -> dict[str, type]:
    """Map public entity-collection member names to their entity types."""
    found: dict[str, type] = {}
    for name, hint in get_type_hints(context_type).items():
        if name.startswith("_"):
            continue
        if get_origin(hint) is EntitySet:
            args = get_args(hint)
            if args:
                found[name] = args[0]
    for klass in reversed(context_type.__mro__):
        for name, value in vars(klass).items():
            if name.startswith("_"):
                continue
            if isinstance(value, EntitySet) and value.entity_type is not None:
                found[name] = value.entity_type
    return found


# PUBLIC_INTERFACE
def entity_types_from_table(pairs: Iterable[Tuple[str, type]]) -> set[type]:
    """Entity types from an explicit ``(member name, entity type)`` table."""
    return {entity_type for _name, entity_type in pairs}


# PUBLIC_INTERFACE
def discover_entity_types(context_type: type) -> set[type]:
    """Exactly the entity types declared as collections on ``context_type``."""
    return entity_types_from_table(entity_sets(context_type).items())
