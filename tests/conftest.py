from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from repokit.db import Base
from tests.models import Membership, Order, Sku, User


@pytest_asyncio.fixture()
async def engine(tmp_path):
    """File-backed SQLite database with all test tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'repokit.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture()
async def seeded(session_factory):
    """Two users, three orders, one membership and one sku."""
    async with session_factory() as session:
        session.add_all(
            [
                User(id=1, name="ada"),
                User(id=2, name="grace"),
                Order(id=1, user_id=1, total=10.0),
                Order(id=2, user_id=1, total=20.0),
                Order(id=3, user_id=2, total=5.0),
                Membership(user_id=1, group_id=10, role="owner"),
                Sku(code="A-1", label="widget"),
            ]
        )
        await session.commit()
    return session_factory
