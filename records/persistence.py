"""Persistence executor: one atomic write per submission."""
import logging
from typing import Callable, Sequence

from records.assembly import Column
from records.cache import RecordCache
from records.errors import DatabaseError
from records.identifiers import generate_private_id, unique_private_id
from records.store import RecordStore
from schemas import Insert, MatchDecision, Skip, Update

logger = logging.getLogger(__name__)


class PersistenceExecutor:
    def __init__(
        self,
        store: RecordStore,
        cache: RecordCache,
        private_id_length: int = 7,
        private_id_attempts: int = 50,
        id_generator: Callable[[int], str] = generate_private_id,
    ):
        self.store = store
        self.cache = cache
        self.private_id_length = private_id_length
        self.private_id_attempts = private_id_attempts
        self.id_generator = id_generator

    async def commit(self, decision: MatchDecision, columns: Sequence[Column]) -> tuple[int, str]:
        """Write ``columns`` and return ``(record_id, private_id)``.

        The written id is marked stale in the cache before this returns.
        """
        data = dict(columns)

        match decision:
            case Insert():
                private_id = await unique_private_id(
                    self.store.private_id_exists,
                    length=self.private_id_length,
                    max_attempts=self.private_id_attempts,
                    generator=self.id_generator,
                )
                record_id = await self.store.insert(data, private_id)
                logger.info("Inserted record %s (%d column(s))", record_id, len(data))
            case Update(record_id=record_id):
                try:
                    record = await self.store.update(record_id, data)
                except DatabaseError:
                    # the write may or may not have landed
                    self.cache.mark_stale(record_id)
                    raise
                private_id = record.private_id
                logger.info("Updated record %s (%d column(s))", record_id, len(data))
            case Skip():
                raise ValueError("a skip decision has nothing to commit")

        self.cache.mark_stale(record_id)
        return record_id, private_id
