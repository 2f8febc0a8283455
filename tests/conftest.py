"""Shared fixtures: an in-memory record store and a small field registry."""
import asyncio
from collections import Counter
from typing import Any, Optional, Sequence

import pytest

from record_config import RecordSettings
from records import RecordCache, StaticFieldRegistry, SubmissionProcessor
from records.errors import DatabaseError, NotFoundError
from schemas import FieldDefinition, FormElementKind, Record


class InMemoryRecordStore:
    """RecordStore fake with optional unique fields and failure injection.

    Every call yields to the event loop once so concurrent submissions
    interleave the way they would against a real database.
    """

    def __init__(self, unique_fields: Sequence[str] = ()):
        self.rows: dict[int, Record] = {}
        self.next_id = 1
        self.unique_fields = tuple(unique_fields)
        self.calls: Counter = Counter()
        self.fail_on: set[str] = set()

    async def _io(self, name: str) -> None:
        self.calls[name] += 1
        await asyncio.sleep(0)
        if name in self.fail_on or "*" in self.fail_on:
            raise DatabaseError(f"{name} failed: store unavailable")

    def seed(self, values: dict[str, Any], private_id: Optional[str] = None) -> Record:
        record_id = self.next_id
        self.next_id += 1
        record = Record(
            id=record_id,
            private_id=private_id or f"P{record_id:06d}",
            values=dict(values),
        )
        self.rows[record_id] = record
        return record

    def snapshot(self) -> dict[int, dict[str, Any]]:
        return {record_id: dict(r.values) for record_id, r in self.rows.items()}

    async def get_by_id(self, record_id: int) -> Optional[Record]:
        await self._io("get_by_id")
        record = self.rows.get(record_id)
        return record.model_copy(deep=True) if record else None

    async def get_by_private_id(self, private_id: str) -> Optional[Record]:
        await self._io("get_by_private_id")
        for record in self.rows.values():
            if record.private_id == private_id:
                return record.model_copy(deep=True)
        return None

    async def query_by_field_equal(self, field: str, value: Any) -> list[int]:
        await self._io("query_by_field_equal")
        return sorted(i for i, r in self.rows.items() if r.values.get(field) == value)

    async def get_many(self, ids: Sequence[int]) -> list[Record]:
        await self._io("get_many")
        return [self.rows[i].model_copy(deep=True) for i in sorted(ids) if i in self.rows]

    async def ordered_ids(self, sort_field: Optional[str] = None, descending: bool = False) -> list[int]:
        await self._io("ordered_ids")
        if not sort_field:
            return sorted(self.rows, reverse=descending)
        return [
            r.id
            for r in sorted(
                self.rows.values(),
                key=lambda r: (str(r.values.get(sort_field, "")), r.id),
                reverse=descending,
            )
        ]

    async def max_id(self) -> int:
        await self._io("max_id")
        return max(self.rows, default=0)

    async def private_id_exists(self, private_id: str) -> bool:
        await self._io("private_id_exists")
        return any(r.private_id == private_id for r in self.rows.values())

    async def insert(self, columns: dict[str, Any], private_id: str) -> int:
        await self._io("insert")
        if any(r.private_id == private_id for r in self.rows.values()):
            raise DatabaseError("duplicate private id")
        for field in self.unique_fields:
            value = columns.get(field)
            if value and any(r.values.get(field) == value for r in self.rows.values()):
                raise DatabaseError(f"unique violation on {field}")
        return self.seed(columns, private_id).id

    async def update(self, record_id: int, columns: dict[str, Any]) -> Record:
        await self._io("update")
        record = self.rows.get(record_id)
        if record is None:
            raise NotFoundError(record_id)
        record.values = {**record.values, **columns}
        return record.model_copy(deep=True)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


CONTACT_FIELDS = [
    FieldDefinition(name="first_name", validation="yes"),
    FieldDefinition(name="last_name", validation="yes"),
    FieldDefinition(name="email", validation="email-regex"),
    FieldDefinition(name="phone"),
    FieldDefinition(name="city", persistent=True),
    FieldDefinition(name="state", default="WA", persistent=True),
    FieldDefinition(name="interests", form_element=FormElementKind.MULTI_CHECKBOX, default=[]),
]


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> StaticFieldRegistry:
    return StaticFieldRegistry(CONTACT_FIELDS)


@pytest.fixture
def settings() -> RecordSettings:
    return RecordSettings(
        private_id_length=7,
        private_id_max_attempts=50,
        cache_window=5,
        cache_ttl=60.0,
        match_policy="update",
        match_fields=("email",),
    )


@pytest.fixture
def cache(store, clock, settings) -> RecordCache:
    return RecordCache(store, window_size=settings.cache_window, ttl=settings.cache_ttl, clock=clock)


@pytest.fixture
def processor(store, registry, cache, settings) -> SubmissionProcessor:
    return SubmissionProcessor(store, registry, cache=cache, settings=settings)


@pytest.fixture
def unique_store() -> InMemoryRecordStore:
    """A store that enforces uniqueness on email, like the production index."""
    return InMemoryRecordStore(unique_fields=("email",))
