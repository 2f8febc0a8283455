"""Record Store interface and its SQLAlchemy adapter."""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import db.repositories.participants as participant_repo
from db.models import Participant
from records.errors import DatabaseError, NotFoundError
from schemas import Record

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Durable keyed storage for records.

    Every write is atomic: either all columns apply or none do. Failures are
    raised as DatabaseError.
    """

    async def get_by_id(self, record_id: int) -> Optional[Record]: ...

    async def get_by_private_id(self, private_id: str) -> Optional[Record]: ...

    async def query_by_field_equal(self, field: str, value: Any) -> list[int]: ...

    async def get_many(self, ids: Sequence[int]) -> list[Record]: ...

    async def ordered_ids(
        self, sort_field: Optional[str] = None, descending: bool = False
    ) -> list[int]: ...

    async def max_id(self) -> int: ...

    async def private_id_exists(self, private_id: str) -> bool: ...

    async def insert(self, columns: dict[str, Any], private_id: str) -> int: ...

    async def update(self, record_id: int, columns: dict[str, Any]) -> Record: ...


def to_record(participant: Participant) -> Record:
    return Record(
        id=participant.id,
        private_id=participant.private_id,
        values=dict(participant.data or {}),
    )


class SqlRecordStore:
    """RecordStore over the participants table, one transaction per call."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            logger.exception("Record store operation failed")
            raise DatabaseError(str(exc)) from exc

    async def get_by_id(self, record_id: int) -> Optional[Record]:
        async with self._transaction() as session:
            participant = await participant_repo.get_by_id(session, record_id)
            return to_record(participant) if participant else None

    async def get_by_private_id(self, private_id: str) -> Optional[Record]:
        async with self._transaction() as session:
            participant = await participant_repo.get_by_private_id(session, private_id)
            return to_record(participant) if participant else None

    async def query_by_field_equal(self, field: str, value: Any) -> list[int]:
        async with self._transaction() as session:
            return await participant_repo.ids_by_field_value(session, field, value)

    async def get_many(self, ids: Sequence[int]) -> list[Record]:
        async with self._transaction() as session:
            return [to_record(p) for p in await participant_repo.get_many(session, ids)]

    async def ordered_ids(
        self, sort_field: Optional[str] = None, descending: bool = False
    ) -> list[int]:
        async with self._transaction() as session:
            return await participant_repo.ordered_ids(session, sort_field, descending)

    async def max_id(self) -> int:
        async with self._transaction() as session:
            return await participant_repo.max_id(session)

    async def private_id_exists(self, private_id: str) -> bool:
        async with self._transaction() as session:
            return await participant_repo.private_id_exists(session, private_id)

    async def insert(self, columns: dict[str, Any], private_id: str) -> int:
        async with self._transaction() as session:
            participant = await participant_repo.insert(session, private_id, columns)
            return participant.id

    async def update(self, record_id: int, columns: dict[str, Any]) -> Record:
        async with self._transaction() as session:
            participant = await participant_repo.update(session, record_id, columns)
            if participant is None:
                raise NotFoundError(record_id)
            return to_record(participant)
