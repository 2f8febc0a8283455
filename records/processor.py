"""Submission processing, the entry point the form layer calls.

    processor = SubmissionProcessor(store, registry)
    outcome = await processor.process_submission(
        {"email": "jane@example.com", "first_name": "Jane"},
        matching_policy=MatchingPolicy(policy="update", fields=["email"]),
    )

The chain is resolve -> validate/assemble -> commit -> cache invalidation.
Errors raised along the way are returned as outcome values; nothing is
written unless every step before the commit succeeds.
"""
import logging
from typing import Any, Iterable, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from record_config import RecordSettings, get_settings
from records.assembly import ValidationAssemblyEngine
from records.cache import RecordCache
from records.context import RequestContext
from records.errors import (
    DatabaseError,
    DuplicateAmbiguousError,
    NotFoundError,
    ValidationError,
)
from records.persistence import PersistenceExecutor
from records.registry import FieldRegistry
from records.resolver import MatchPolicy, RecordMatchResolver
from records.store import RecordStore, SqlRecordStore
from records.validators import ValidatorRegistry, default_validators, error_message
from schemas import (
    DatabaseFailure,
    DuplicateAmbiguous,
    Insert,
    MatchingPolicy,
    NotFound,
    Record,
    Skip,
    Skipped,
    Submission,
    SubmissionOutcome,
    Success,
    Update,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


class SubmissionProcessor:
    def __init__(
        self,
        store: RecordStore,
        registry: FieldRegistry,
        cache: Optional[RecordCache] = None,
        validators: Optional[ValidatorRegistry] = None,
        policies: Optional[Iterable[MatchPolicy]] = None,
        settings: Optional[RecordSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.registry = registry
        self.cache = cache or RecordCache(
            store,
            window_size=self.settings.cache_window,
            ttl=self.settings.cache_ttl,
        )
        self.resolver = RecordMatchResolver(store, policies, registry=registry)
        self.engine = ValidationAssemblyEngine(registry, validators or default_validators(store))
        self.executor = PersistenceExecutor(
            store,
            self.cache,
            private_id_length=self.settings.private_id_length,
            private_id_attempts=self.settings.private_id_max_attempts,
        )

    @classmethod
    def from_sessionmaker(
        cls,
        sessionmaker: async_sessionmaker[AsyncSession],
        registry: FieldRegistry,
        **kwargs: Any,
    ) -> "SubmissionProcessor":
        return cls(SqlRecordStore(sessionmaker), registry, **kwargs)

    def default_matching(self) -> MatchingPolicy:
        return MatchingPolicy(
            policy=self.settings.match_policy,
            fields=list(self.settings.match_fields),
        )

    async def process_submission(
        self,
        submission: Union[Submission, dict[str, Any]],
        record_id_hint: Optional[int] = None,
        expected_fields: Optional[Sequence[str]] = None,
        matching_policy: Optional[MatchingPolicy] = None,
        context: Optional[RequestContext] = None,
    ) -> SubmissionOutcome:
        """Resolve, validate and commit one submission."""
        if isinstance(submission, Submission):
            values = dict(submission.values)
            record_id_hint = submission.record_id_hint if record_id_hint is None else record_id_hint
            expected_fields = submission.expected_fields if expected_fields is None else expected_fields
            matching_policy = matching_policy or submission.matching_policy
        else:
            values = dict(submission)
        matching_policy = matching_policy or self.default_matching()
        context = context or RequestContext()
        context.clear_errors()

        try:
            decision = await self.resolver.resolve(values, record_id_hint, matching_policy)

            match decision:
                case Skip():
                    return self._skipped(decision, context)
                case Insert():
                    existing = None
                    previous = await self._previous_record(context)
                case Update(record_id=record_id):
                    existing = await self.cache.get(record_id)
                    previous = None

            columns = await self.engine.assemble(
                values,
                decision,
                context,
                expected_fields=expected_fields,
                existing=existing,
                previous=previous,
            )
            record_id, private_id = await self.executor.commit(decision, columns)

        except ValidationError as exc:
            logger.info(
                "Submission (%s) failed validation on %s", context.label, sorted(exc.errors)
            )
            return ValidationFailed(errors=exc.errors)
        except NotFoundError as exc:
            logger.info("Submission (%s) names missing record %s", context.label, exc.record_id)
            return NotFound(record_id=exc.record_id)
        except DuplicateAmbiguousError as exc:
            logger.warning("Submission (%s) rejected: %s", context.label, exc)
            return DuplicateAmbiguous(field=exc.field, candidates=exc.candidates)
        except DatabaseError as exc:
            logger.error("Submission (%s) failed in the record store: %s", context.label, exc, exc_info=True)
            return DatabaseFailure()

        if isinstance(decision, Insert):
            context.previous_record_id = record_id
        return Success(record_id=record_id, private_id=private_id, action=decision.kind)

    def _skipped(self, decision: Skip, context: RequestContext) -> Skipped:
        message = None
        if decision.reported and decision.field:
            definition = next(
                (d for d in self.registry.fields() if d.name == decision.field), None
            )
            if definition is not None:
                message = error_message("duplicate", definition)
                context.add_error(decision.field, "duplicate", message)
        logger.info(
            "Submission (%s) skipped: %s (record %s)",
            context.label, decision.reason, decision.record_id,
        )
        return Skipped(
            reason=decision.reason,
            record_id=decision.record_id,
            field=decision.field,
            reported=decision.reported,
            message=message,
        )

    async def _previous_record(self, context: RequestContext) -> Optional[Record]:
        if context.previous_record_id is None:
            return None
        return await self.cache.get(context.previous_record_id)

    # ------------------------------------------------------------------
    # Read paths
    # ------------------------------------------------------------------

    async def get_record(self, record_id: int) -> Optional[Record]:
        return await self.cache.get(record_id)

    async def get_record_by_private_id(self, private_id: str) -> Optional[Record]:
        return await self.store.get_by_private_id(private_id.strip().upper())

    async def neighbors(self, record_id: int) -> tuple[Optional[int], Optional[int]]:
        return await self.cache.neighbors(record_id)
