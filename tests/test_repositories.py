"""Integration tests for the participant and field repositories.

These run against a real PostgreSQL database with the migrations applied
(``alembic upgrade head``) and are skipped when DATABASE_URL is not set.
Example: export DATABASE_URL="postgresql+asyncpg://records:<password>@<host>:5432/participants"
See .env.example for configuration details.
"""
import asyncio
import os
import uuid
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from db import dispose_engine, get_db, get_sessionmaker
from db.repositories import participants as participant_repo
from records import DatabaseError, NotFoundError, RecordCache, SqlFieldRegistry, SqlRecordStore
from records.registry import save_field
from schemas import FieldDefinition, FormElementKind

pytestmark = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL is not set",
)


@pytest_asyncio.fixture(autouse=True)
async def _engine():
    yield
    await dispose_engine()


def _email(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_insert_and_point_reads():
    """A committed insert is readable by id and by private id."""
    store = SqlRecordStore(get_sessionmaker())
    private_id = uuid.uuid4().hex[:7].upper()
    email = _email("insert")

    record_id = await store.insert({"email": email, "first_name": "Jane"}, private_id)

    by_id = await store.get_by_id(record_id)
    by_private = await store.get_by_private_id(private_id)
    assert by_id is not None and by_private is not None
    assert by_id.id == by_private.id == record_id
    assert by_id.values == {"email": email, "first_name": "Jane"}
    assert await store.private_id_exists(private_id) is True
    assert await store.max_id() >= record_id


@pytest.mark.asyncio
async def test_update_merges_values():
    """update writes only the given keys and keeps the rest."""
    store = SqlRecordStore(get_sessionmaker())
    email = _email("update")
    record_id = await store.insert({"email": email, "phone": "1", "city": "Tacoma"}, uuid.uuid4().hex[:7])

    record = await store.update(record_id, {"phone": "2"})

    assert record.values == {"email": email, "phone": "2", "city": "Tacoma"}
    assert (await store.get_by_id(record_id)).values["phone"] == "2"


@pytest.mark.asyncio
async def test_update_missing_row_raises_not_found():
    store = SqlRecordStore(get_sessionmaker())
    with pytest.raises(NotFoundError):
        await store.update(2_000_000_000, {"phone": "2"})


@pytest.mark.asyncio
async def test_equality_lookup_returns_lowest_id_first():
    """query_by_field_equal finds every row with the value, in id order."""
    store = SqlRecordStore(get_sessionmaker())
    team = f"team-{uuid.uuid4().hex[:8]}"
    first = await store.insert({"team": team, "email": _email("a")}, uuid.uuid4().hex[:7])
    second = await store.insert({"team": team, "email": _email("b")}, uuid.uuid4().hex[:7])
    await store.insert({"team": "other", "email": _email("c")}, uuid.uuid4().hex[:7])

    assert await store.query_by_field_equal("team", team) == [first, second]
    assert await store.query_by_field_equal("team", f"{team}-missing") == []


@pytest.mark.asyncio
async def test_get_many_and_ordered_ids():
    store = SqlRecordStore(get_sessionmaker())
    ids = [
        await store.insert({"email": _email("order"), "last_name": name}, uuid.uuid4().hex[:7])
        for name in ("Zeta", "Alpha")
    ]

    records = await store.get_many(ids + [2_000_000_000])
    assert [r.id for r in records] == sorted(ids)

    by_id = await store.ordered_ids()
    assert by_id == sorted(by_id)
    by_name = await store.ordered_ids("last_name")
    assert by_name.index(ids[1]) < by_name.index(ids[0])


@pytest.mark.asyncio
async def test_duplicate_email_is_rejected():
    """The unique email index turns a racing duplicate insert into DatabaseError."""
    store = SqlRecordStore(get_sessionmaker())
    email = _email("race")

    results = await asyncio.gather(
        store.insert({"email": email}, uuid.uuid4().hex[:7]),
        store.insert({"email": email}, uuid.uuid4().hex[:7]),
        return_exceptions=True,
    )

    assert sum(isinstance(r, int) for r in results) == 1
    assert sum(isinstance(r, DatabaseError) for r in results) == 1
    assert len(await store.query_by_field_equal("email", email)) == 1


@pytest.mark.asyncio
async def test_participant_repo_for_update_lock():
    """update inside a session returns None for a missing id instead of raising."""
    async with get_db() as session:
        assert await participant_repo.update(session, 2_000_000_000, {"x": 1}) is None


@pytest.mark.asyncio
async def test_save_field_upserts_and_clears_cache():
    """Saving the same field name twice updates it in place."""
    name = f"field_{uuid.uuid4().hex[:8]}"
    cache = MagicMock(spec=RecordCache)

    async with get_db() as session:
        await save_field(session, FieldDefinition(name=name, validation="yes"), position=900)
    async with get_db() as session:
        saved = await save_field(
            session,
            FieldDefinition(name=name, title="Favourite Colour", form_element=FormElementKind.DROPDOWN,
                            options=["red", "blue"]),
            position=901,
            cache=cache,
        )

    assert saved.title == "Favourite Colour"
    assert saved.validation is None
    cache.invalidate_all.assert_called_once_with()

    registry = SqlFieldRegistry()
    async with get_db() as session:
        definitions = await registry.refresh(session)
    matching = [d for d in definitions if d.name == name]
    assert len(matching) == 1
    assert matching[0].form_element is FormElementKind.DROPDOWN
    assert matching[0].options == ["red", "blue"]
