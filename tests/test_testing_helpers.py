from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from repokit.repositories import IReadRepository
from repokit.testing import InMemoryQueryable, setup_data, setup_empty_data
from tests.models import User


@pytest.fixture()
def users():
    return [User(id=1, name="ada"), User(id=2, name="grace")]


def test_in_memory_queryable(users):
    source = InMemoryQueryable(users, User)
    assert source.element_type is User
    assert isinstance(source.provider, AsyncSession)
    assert source.expression.column_descriptions[0]["type"] is User
    assert list(source) == list(source) == users
    assert len(source) == 2


def test_in_memory_queryable_of_unmapped_type():
    assert InMemoryQueryable([1, 2], int).expression is None


def test_setup_data_sync_enumeration(users):
    repo = setup_data(MagicMock(spec=IReadRepository), users)
    assert repo.element_type is User
    assert isinstance(repo.provider, AsyncSession)
    assert repo.expression.column_descriptions[0]["type"] is User
    assert [u.name for u in repo] == ["ada", "grace"]
    assert [u.name for u in repo] == ["ada", "grace"]


@pytest.mark.asyncio
async def test_setup_data_async_enumeration(users):
    repo = setup_data(MagicMock(spec=IReadRepository), iter(users))
    assert [u.id async for u in repo] == [1, 2]
    assert [u.id async for u in repo] == [1, 2]
    assert await repo.all() == users


@pytest.mark.asyncio
async def test_setup_empty_data():
    repo = setup_empty_data(MagicMock(spec=IReadRepository), User)
    assert repo.element_type is User
    assert list(repo) == []
    assert [u async for u in repo] == []
    assert await repo.all() == []
