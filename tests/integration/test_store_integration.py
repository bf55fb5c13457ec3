"""Integration tests for the request store against a real PostgreSQL.

Run with: TEST_DATABASE_URL=postgresql://... pytest tests/integration -m integration
"""

import asyncio
import uuid

import pytest
from sqlalchemy import text

from reqrelay.core.errors import ConflictError, NotFoundError
from reqrelay.db import Database
from reqrelay.db.migrate import run_migrations
from reqrelay.services.request_store import RequestStore

pytestmark = pytest.mark.integration


@pytest.fixture
async def database(db_settings):
    await asyncio.to_thread(run_migrations, db_settings)
    database = Database(db_settings.database)
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def name() -> str:
    return f"job-{uuid.uuid4().hex[:12]}"


async def _create(database: Database, name: str, payload: dict):
    async with database.session() as session:
        record = await RequestStore(session).create(name, payload)
        await session.commit()
        return record


@pytest.mark.asyncio
async def test_create_get_roundtrip(database, name):
    created = await _create(database, name, {"image": "nginx"})
    assert created.created_at is not None

    async with database.session() as session:
        fetched = await RequestStore(session).get(name)

    assert fetched.payload == {"image": "nginx"}
    assert fetched.status == "pending"


@pytest.mark.asyncio
async def test_concurrent_duplicate_creates(database, name):
    """Test that exactly one of two racing creates wins."""
    results = await asyncio.gather(
        _create(database, name, {"n": 1}),
        _create(database, name, {"n": 2}),
        return_exceptions=True,
    )

    conflicts = [r for r in results if isinstance(r, ConflictError)]
    created = [r for r in results if not isinstance(r, Exception)]
    assert len(conflicts) == 1
    assert len(created) == 1


@pytest.mark.asyncio
async def test_update_refreshes_updated_at(database, name):
    created = await _create(database, name, {"v": 1})

    async with database.session() as session:
        updated = await RequestStore(session).update(name, {"v": 2})
        await session.commit()

    assert updated.payload == {"v": 2}
    assert updated.updated_at > created.updated_at


@pytest.mark.asyncio
async def test_delete_then_missing(database, name):
    await _create(database, name, {})

    async with database.session() as session:
        deleted = await RequestStore(session).delete(name)
        await session.commit()
    assert deleted.name == name

    async with database.session() as session:
        store = RequestStore(session)
        with pytest.raises(NotFoundError):
            await store.get(name)
        with pytest.raises(NotFoundError):
            await store.delete(name)


@pytest.mark.asyncio
async def test_list_in_insertion_order(database, name):
    names = [f"{name}-{i}" for i in range(3)]
    for n in names:
        await _create(database, n, {})

    async with database.session() as session:
        listed = [r.name for r in await RequestStore(session).list()]

    assert [n for n in listed if n in names] == names


@pytest.mark.asyncio
async def test_migrations_are_repeatable(database, db_settings):
    await asyncio.to_thread(run_migrations, db_settings)

    async with database.engine.connect() as conn:
        version = (await conn.execute(text("SELECT version_num FROM alembic_version"))).scalar()
    assert version == "001"
