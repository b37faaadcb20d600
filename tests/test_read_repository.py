from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.exc import MultipleResultsFound
from sqlalchemy.ext.asyncio import AsyncSession

from repokit.exceptions import NotFoundError
from repokit.repositories import IReadRepository, ReadRepository
from tests.models import Membership, Order, Sku, User


@pytest.fixture()
def make_repo(seeded):
    def _make(entity_type=User, **kwargs):
        return ReadRepository(seeded(), entity_type, **kwargs)

    return _make


@pytest.mark.asyncio
async def test_find_returns_entity_or_none(make_repo):
    repo = make_repo()
    user = await repo.find(1)
    assert user.name == "ada"
    assert await repo.find(999) is None
    await repo.close()


@pytest.mark.asyncio
async def test_find_composite_key(make_repo):
    repo = make_repo(Membership)
    membership = await repo.find((1, 10))
    assert membership.role == "owner"
    assert await repo.find([1, 11]) is None
    await repo.close()


@pytest.mark.asyncio
async def test_find_or_throw_does_not_name_the_key(make_repo):
    repo = make_repo()
    with pytest.raises(NotFoundError) as exc_info:
        await repo.find_or_throw(999)
    err = exc_info.value
    assert err.entity_type == "User"
    assert err.key == 999
    assert err.key_name == "Id"
    await repo.close()


@pytest.mark.asyncio
async def test_get_returns_entity_or_none(make_repo):
    repo = make_repo()
    assert (await repo.get(2)).name == "grace"
    assert await repo.get(999) is None
    await repo.close()


@pytest.mark.asyncio
async def test_get_string_key(make_repo):
    repo = make_repo(Sku)
    assert (await repo.get_or_throw("A-1")).label == "widget"
    await repo.close()


@pytest.mark.asyncio
async def test_get_or_throw_names_the_resolved_key(make_repo):
    repo = make_repo()
    with pytest.raises(NotFoundError) as exc_info:
        await repo.get_or_throw(999)
    err = exc_info.value
    assert err.entity_type == "User"
    assert err.key_name == "id"
    assert str(err) == "User not found with key 'id' using: 999"
    await repo.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("key", [1, 2, 999])
async def test_get_and_find_agree(make_repo, key):
    by_get = make_repo()
    by_find = make_repo()
    found = await by_find.find(key)
    got = await by_get.get(key)
    assert (found is None) == (got is None)
    if found is not None:
        assert found.id == got.id
    await by_get.close()
    await by_find.close()


@pytest.mark.asyncio
async def test_duplicate_matches_propagate_and_leave_nothing_attached(make_repo):
    repo = make_repo(Order, key_accessor=Order.user_id)
    with pytest.raises(MultipleResultsFound):
        await repo.get(1)
    assert list(repo.session.sync_session.identity_map.keys()) == []
    await repo.close()


@pytest.mark.asyncio
async def test_explicit_key_accessor(make_repo):
    repo = make_repo(key_accessor=User.name)
    assert (await repo.get("ada")).id == 1
    with pytest.raises(NotFoundError) as exc_info:
        await repo.get_or_throw("nobody")
    assert exc_info.value.key_name == "name"
    await repo.close()


@pytest.mark.asyncio
async def test_untracked_by_default(make_repo):
    repo = make_repo()
    assert repo.tracks_changes is False
    user = await repo.get(1)
    assert inspect(user).detached
    assert all(inspect(u).detached for u in await repo.all())
    await repo.close()


@pytest.mark.asyncio
async def test_tracked_view_keeps_entities_attached(make_repo):
    repo = make_repo()
    repo.set_tracking_behavior(True)
    user = await repo.get(1)
    assert user in repo.session
    await repo.close()


@pytest.mark.asyncio
async def test_switching_tracking_keeps_row_count(make_repo):
    repo = make_repo()
    untracked = len(await repo.all())
    repo.set_tracking_behavior(True)
    tracked = len(await repo.all())
    repo.set_tracking_behavior(False)
    assert untracked == tracked == len(await repo.all()) == 2
    await repo.close()


@pytest.mark.asyncio
async def test_switching_tracking_keeps_staged_changes(make_repo):
    repo = make_repo()
    repo.set_tracking_behavior(True)
    user = await repo.get(1)
    user.name = "ada lovelace"
    repo.set_tracking_behavior(False)
    users = {u.id: u for u in await repo.all()}
    assert users[1] is user
    assert user in repo.session
    assert user in repo.session.dirty
    assert user.name == "ada lovelace"
    await repo.close()


@pytest.mark.asyncio
async def test_find_result_survives_untracked_query(make_repo):
    repo = make_repo()
    user = await repo.find(1)
    await repo.all()
    assert user in repo.session
    await repo.close()


@pytest.mark.asyncio
async def test_set_queryable_filters_the_view(make_repo):
    repo = make_repo()
    repo.set_queryable(select(User).where(User.name == "ada"))
    assert [u.id for u in await repo.all()] == [1]
    assert await repo.get(2) is None
    assert await repo.find(2) is not None
    await repo.close()


@pytest.mark.asyncio
async def test_set_queryable_can_enable_tracking(make_repo):
    repo = make_repo()
    repo.set_queryable(select(User).order_by(User.id.desc()), track_changes=True)
    assert repo.tracks_changes is True
    assert [u.id for u in await repo.all()] == [2, 1]
    await repo.close()


@pytest.mark.asyncio
async def test_set_queryable_rejects_other_element_types(make_repo):
    repo = make_repo()
    with pytest.raises(TypeError):
        repo.set_queryable(select(Order))
    with pytest.raises(TypeError):
        repo.set_queryable(select(User.id))
    await repo.close()


@pytest.mark.asyncio
async def test_async_enumeration_is_restartable(make_repo):
    repo = make_repo()
    first = [u.name async for u in repo]
    second = [u.name async for u in repo]
    assert sorted(first) == sorted(second) == ["ada", "grace"]
    await repo.close()


@pytest.mark.asyncio
async def test_sync_enumeration_inside_run_sync(make_repo):
    repo = make_repo()
    names = await repo.run_sync(lambda r: sorted(u.name for u in r))
    assert names == ["ada", "grace"]
    await repo.close()


@pytest.mark.asyncio
async def test_queryable_source_shape(make_repo):
    repo = make_repo()
    assert isinstance(repo, IReadRepository)
    assert repo.element_type is User
    assert repo.expression.column_descriptions[0]["entity"] is User
    assert repo.provider is repo.session
    await repo.close()


@pytest.mark.asyncio
async def test_close_is_idempotent():
    session = MagicMock(spec=AsyncSession)
    repo = ReadRepository(session, User)
    await repo.close()
    await repo.close()
    session.close.assert_awaited_once()
    assert repo.closed
    with pytest.raises(RuntimeError):
        await repo.find(1)


@pytest.mark.asyncio
async def test_async_with_closes_session():
    session = MagicMock(spec=AsyncSession)
    async with ReadRepository(session, User) as repo:
        assert not repo.closed
    session.close.assert_awaited_once()
