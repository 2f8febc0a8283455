"""Record match resolution: decides insert, update or skip for a submission."""
import logging
from typing import Any, Iterable, Optional, Protocol

from records.assembly import normalize_value
from records.errors import DuplicateAmbiguousError, NotFoundError
from records.registry import FieldRegistry
from records.store import RecordStore
from records.validators import is_empty
from schemas import FieldDefinition, Insert, MatchDecision, MatchingPolicy, Skip, Update

logger = logging.getLogger(__name__)


class MatchPolicy(Protocol):
    """What to do when a submission matches an existing record."""

    name: str

    def on_match(self, record_id: int, field: str) -> MatchDecision: ...


class StrictPolicy:
    """Never merge; the duplicate is reported back to the user."""

    name = "strict"

    def on_match(self, record_id: int, field: str) -> MatchDecision:
        return Skip(reason="duplicate", record_id=record_id, field=field, reported=True)


class UpdatePolicy:
    """Merge the submission into the matched record."""

    name = "update"

    def on_match(self, record_id: int, field: str) -> MatchDecision:
        return Update(record_id=record_id)


class BlockPolicy:
    """Drop the submission without telling the user."""

    name = "block"

    def on_match(self, record_id: int, field: str) -> MatchDecision:
        return Skip(reason="blocked", record_id=record_id, field=field, reported=False)


def default_policies() -> dict[str, MatchPolicy]:
    return {p.name: p for p in (StrictPolicy(), UpdatePolicy(), BlockPolicy())}


class RecordMatchResolver:
    """Classifies a submission against the records already stored.

    Matching fields are tried in priority order and the first field that has
    a non-empty submitted value and at least one stored match decides. Values
    are compared in stored form, cleaned the way the field is written. When
    several records match, the lowest id wins.
    """

    def __init__(
        self,
        store: RecordStore,
        policies: Optional[Iterable[MatchPolicy]] = None,
        registry: Optional[FieldRegistry] = None,
    ):
        self.store = store
        self.registry = registry
        self.policies = default_policies()
        for policy in policies or ():
            self.policies[policy.name] = policy

    def policy(self, name: str) -> MatchPolicy:
        try:
            return self.policies[name]
        except KeyError:
            raise ValueError(
                f"unknown match policy {name!r}; expected one of {sorted(self.policies)}"
            ) from None

    async def resolve(
        self,
        values: dict[str, Any],
        record_id_hint: Optional[int],
        matching: MatchingPolicy,
    ) -> MatchDecision:
        if record_id_hint is not None:
            if await self.store.get_by_id(record_id_hint) is None:
                raise NotFoundError(record_id_hint)
            logger.debug("Record id %s given explicitly; updating", record_id_hint)
            return Update(record_id=record_id_hint)

        policy = self.policy(matching.policy)
        for field in matching.fields:
            value = self._match_value(field, values.get(field))
            if is_empty(value):
                continue
            ids = sorted(await self.store.query_by_field_equal(field, value))
            if not ids:
                continue
            if len(ids) > 1:
                if matching.reject_ambiguous:
                    raise DuplicateAmbiguousError(field, ids)
                logger.warning(
                    "Submission matches %d records on %s (%s); using record %s",
                    len(ids), field, ids, ids[0],
                )
            decision = policy.on_match(ids[0], field)
            logger.info(
                "Submission matched record %s on %s; policy %s -> %s",
                ids[0], field, policy.name, decision.kind,
            )
            return decision

        return Insert()

    def _match_value(self, field: str, raw: Any) -> Any:
        """The submitted value in the form it would be stored, None if unusable."""
        if is_empty(raw):
            return None
        definition = self._definition(field)
        if definition is None:
            return raw.strip() if isinstance(raw, str) else raw
        try:
            return normalize_value(definition, raw)
        except ValueError as exc:
            logger.debug("Not matching on %s: %s", field, exc)
            return None

    def _definition(self, field: str) -> Optional[FieldDefinition]:
        if self.registry is None:
            return None
        return next((d for d in self.registry.fields() if d.name == field), None)
