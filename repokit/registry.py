"""
Repository registry with auto-registration from context descriptors.

    registry = RepositoryRegistry().register_all(ShopContext)
    async with registry.scope(session_factory) as scope:
        users = scope.get(IWriteRepository, User)
        await users.add(User(name="ada"))

Each binding builds a fresh repository per resolve call. A scope gives every
repository it resolves its own session and closes them all on exit.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Dict, Tuple, Type
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from repokit.core.logging import scope_id_var
from repokit.db.context import discover_entity_types
from repokit.repositories.interfaces import IReadRepository, IWriteRepository
from repokit.repositories.read import ReadRepository
from repokit.repositories.write import WriteRepository

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[AsyncSession], Any]
BindingKey = Tuple[type, type]


def _bind(implementation: type, entity_type: type) -> RepositoryFactory:
    def factory(session: AsyncSession) -> Any:
        return implementation(session, entity_type)

    return factory


class RepositoryRegistry:
    """Bindings of ``(capability, entity type)`` to repository factories."""

    def __init__(self) -> None:
        self._bindings: Dict[BindingKey, RepositoryFactory] = {}

    @property
    def bindings(self) -> Dict[BindingKey, RepositoryFactory]:
        return dict(self._bindings)

    def register(
        self, capability: type, entity_type: type, factory: RepositoryFactory
    ) -> "RepositoryRegistry":
        """Bind one factory, replacing any earlier binding for the same pair."""
        self._bindings[(capability, entity_type)] = factory
        return self

    def is_registered(self, capability: type, entity_type: type) -> bool:
        return (capability, entity_type) in self._bindings

    # PUBLIC_INTERFACE
    def register_read_repositories(self, context_type: type) -> "RepositoryRegistry":
        """Bind a ReadRepository for every entity collection on the context."""
        return self._register_from(context_type, IReadRepository, ReadRepository)

    # PUBLIC_INTERFACE
    def register_write_repositories(self, context_type: type) -> "RepositoryRegistry":
        """Bind a WriteRepository for every entity collection on the context."""
        return self._register_from(context_type, IWriteRepository, WriteRepository)

    # PUBLIC_INTERFACE
    def register_all(self, context_type: type) -> "RepositoryRegistry":
        """Bind both read and write repositories for the context."""
        self.register_read_repositories(context_type)
        self.register_write_repositories(context_type)
        return self

    def _register_from(
        self, context_type: type, capability: type, implementation: type
    ) -> "RepositoryRegistry":
        entity_types = discover_entity_types(context_type)
        for entity_type in entity_types:
            self.register(capability, entity_type, _bind(implementation, entity_type))
        logger.info(
            "Registered %s for %s: %s",
            capability.__name__,
            context_type.__name__,
            ", ".join(sorted(t.__name__ for t in entity_types)) or "-",
        )
        return self

    def resolve(self, capability: Type[Any], entity_type: type, session: AsyncSession) -> Any:
        """
        Build a new repository bound to ``session``.

        Raises:
            LookupError: nothing is registered for the pair.
        """
        try:
            factory = self._bindings[(capability, entity_type)]
        except KeyError:
            raise LookupError(
                f"No {capability.__name__} registered for {entity_type.__name__}"
            ) from None
        return factory(session)

    @asynccontextmanager
    async def scope(
        self, session_factory: Callable[[], AsyncSession]
    ) -> AsyncGenerator["RepositoryScope", None]:
        """Yield a scope that resolves repositories for one unit of work."""
        scope = RepositoryScope(self, session_factory)
        token = scope_id_var.set(uuid4().hex[:12])
        logger.debug("Opened repository scope")
        try:
            yield scope
        finally:
            await scope.close()
            logger.debug("Closed repository scope")
            scope_id_var.reset(token)


class RepositoryScope:
    """
    Repositories resolved for one logical unit of work.

    Each repository owns a session opened from the factory; repeated lookups
    of the same pair return the same instance.
    """

    def __init__(
        self, registry: RepositoryRegistry, session_factory: Callable[[], AsyncSession]
    ) -> None:
        self.registry = registry
        self.session_factory = session_factory
        self._instances: Dict[BindingKey, Any] = {}

    def get(self, capability: Type[Any], entity_type: type) -> Any:
        key = (capability, entity_type)
        if key not in self._instances:
            self._instances[key] = self.registry.resolve(
                capability, entity_type, self.session_factory()
            )
        return self._instances[key]

    async def close(self) -> None:
        for repository in self._instances.values():
            await repository.close()
        self._instances.clear()
