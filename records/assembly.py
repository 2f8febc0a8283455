"""Validation and column assembly for one submission.

Produces either the ordered column assignments for the write or a
ValidationError holding every problem found. No partial column set ever
leaves this module.
"""
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from dateutil import parser as date_parser

from records.context import RequestContext
from records.errors import ValidationError
from records.registry import FieldRegistry
from records.validators import (
    CaptchaValidator,
    FieldCheck,
    ValidatorRegistry,
    error_message,
    is_empty,
)
from schemas import FieldDefinition, FormElementKind, Insert, MatchDecision, Record, Update

logger = logging.getLogger(__name__)

Column = tuple[str, Any]

_TAG = re.compile(r"<[^>]*>")
# serialized PHP values are never accepted as field input
_SERIALIZATION = re.compile(r"^[OsibNa]:")


def _text(value: Any, allow_html: bool = False) -> str:
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if v is not None)
    text = str(value).strip()
    if _SERIALIZATION.match(text):
        return ""
    return text if allow_html else _TAG.sub("", text).strip()


def normalize_value(definition: FieldDefinition, raw: Any) -> Any:
    """Convert a raw submitted value to its stored form.

    Raises ValueError when the value can't be read as the field's type.
    """
    if raw is None:
        return None

    match definition.form_element:
        case FormElementKind.RICH_TEXT:
            return _text(raw, allow_html=True)
        case FormElementKind.NUMERIC:
            text = _text(raw)
            return int(text) if text else None
        case FormElementKind.DECIMAL | FormElementKind.CURRENCY:
            text = _text(raw)
            if not text:
                return None
            try:
                return str(Decimal(text))
            except InvalidOperation:
                raise ValueError(f"not a number: {text!r}") from None
        case FormElementKind.DATE:
            if isinstance(raw, datetime):
                return raw.date().isoformat()
            if isinstance(raw, date):
                return raw.isoformat()
            text = _text(raw)
            try:
                return date_parser.parse(text).date().isoformat() if text else None
            except OverflowError:
                raise ValueError(f"date out of range: {text!r}") from None
        case FormElementKind.TIMESTAMP:
            if isinstance(raw, datetime):
                return raw.isoformat()
            text = _text(raw)
            try:
                return date_parser.parse(text).isoformat() if text else None
            except OverflowError:
                raise ValueError(f"timestamp out of range: {text!r}") from None
        case kind if kind.is_multi:
            items = raw if isinstance(raw, (list, tuple)) else [raw]
            return [_text(item) for item in items if not is_empty(item)]
        case _:
            return _text(raw)


class ValidationAssemblyEngine:
    def __init__(self, registry: FieldRegistry, validators: ValidatorRegistry):
        self.registry = registry
        self.validators = validators
        self._captcha = validators.named("captcha") or CaptchaValidator()

    def active_fields(self, expected_fields: Optional[Sequence[str]]) -> list[FieldDefinition]:
        definitions = self.registry.fields()
        if expected_fields is None:
            return definitions
        by_name = {d.name: d for d in definitions}
        unknown = [name for name in expected_fields if name not in by_name]
        if unknown:
            logger.debug("Ignoring expected fields not in the registry: %s", unknown)
        return [by_name[name] for name in expected_fields if name in by_name]

    async def assemble(
        self,
        values: dict[str, Any],
        decision: MatchDecision,
        context: RequestContext,
        expected_fields: Optional[Sequence[str]] = None,
        existing: Optional[Record] = None,
        previous: Optional[Record] = None,
    ) -> list[Column]:
        """Validate the submission and return its column assignments.

        ``existing`` is the stored record for an update; ``previous`` is the
        last record written in this session, used for persistent fields.
        """
        if not isinstance(decision, (Insert, Update)):
            raise ValueError(f"cannot assemble columns for a {decision.kind} decision")

        record_id = decision.record_id if isinstance(decision, Update) else None
        active = self.active_fields(expected_fields)

        await self._check_captcha(active, values, record_id, context)

        columns: list[Column] = []
        for definition in active:
            kind = definition.form_element
            if not kind.is_stored:
                continue

            name = definition.name
            submitted = name in values
            raw = self._effective_value(definition, values, existing, previous)

            try:
                value = normalize_value(definition, raw)
            except ValueError as exc:
                logger.debug("Field %s rejected: %s", name, exc)
                context.add_error(name, "invalid", error_message("invalid", definition))
                continue

            validator = self.validators.resolve(definition, values)
            if validator is not None:
                error_type = await validator.validate(
                    FieldCheck(definition, value, values, record_id, context)
                )
                if error_type:
                    context.add_error(name, error_type, error_message(error_type, definition))
                    continue

            if isinstance(decision, Update):
                if not submitted:
                    continue
                if definition.readonly and not context.privileged:
                    continue
                if kind is FormElementKind.PASSWORD and is_empty(value):
                    continue

            columns.append((name, value))

        if context.has_errors():
            raise ValidationError(dict(context.messages), dict(context.errors))
        return columns

    async def _check_captcha(
        self,
        active: list[FieldDefinition],
        values: dict[str, Any],
        record_id: Optional[int],
        context: RequestContext,
    ) -> None:
        for definition in active:
            if definition.form_element is not FormElementKind.CAPTCHA:
                continue
            check = FieldCheck(definition, values.get(definition.name), values, record_id, context)
            error_type = await self._captcha.validate(check)
            if error_type:
                context.add_error(
                    definition.name, error_type, error_message(error_type, definition)
                )
                raise ValidationError(dict(context.messages), dict(context.errors))

    @staticmethod
    def _effective_value(
        definition: FieldDefinition,
        values: dict[str, Any],
        existing: Optional[Record],
        previous: Optional[Record],
    ) -> Any:
        name = definition.name
        if name in values:
            return values[name]
        if existing is not None and name in existing.values:
            return existing.values[name]
        if definition.persistent and previous is not None and not is_empty(previous.get(name)):
            return previous.get(name)
        return definition.default
