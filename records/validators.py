"""Field validation strategies.

A field's ``validation`` setting names the rule:
  None / "no"      no validation
  "yes"            value required
  "email-regex"    email address format ("email" on a field named email too)
  "unique"         no other record may hold the same value
  "captcha"        must equal the answer held by the request context
  "/.../i", "#...#" a delimited regular expression
  <field name>     must equal the submitted value of that field

Anything else passes. Validators return an error type or None.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from records.context import RequestContext
from records.store import RecordStore
from schemas import FieldDefinition

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)

ERROR_MESSAGES = {
    "empty": "The {field} field is required.",
    "invalid": "The {field} field appears to be incorrect.",
    "nonmatching": "The {field} field must match.",
    "duplicate": "Another record already has that {field}.",
    "captcha": "Please try the {field} question again.",
}

_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}
_BRACKETS = {"(": ")", "[": "]", "{": "}", "<": ">"}


def is_empty(value: Any) -> bool:
    """True for None, whitespace-only strings and lists of them. 0 is a value."""
    if value is None:
        return True
    if isinstance(value, (list, tuple)):
        return "".join(str(v) for v in value if v is not None).strip() == ""
    if isinstance(value, str):
        return value.strip() == ""
    return False


def error_message(error_type: str, definition: FieldDefinition) -> str:
    template = ERROR_MESSAGES.get(error_type, error_type)
    return template.format(field=definition.label)


def compile_delimited(rule: str) -> Optional[re.Pattern]:
    """Compile a delimited pattern like ``#^\\d+$#i``; None if ``rule`` isn't one."""
    if not rule or rule[0].isalnum() or rule[0] in "\\ ":
        return None
    opener = rule[0]
    closer = _BRACKETS.get(opener, opener)
    end = rule.rfind(closer)
    if end <= 0:
        return None
    body, modifiers = rule[1:end], rule[end + 1:]
    flags = 0
    for modifier in modifiers:
        if modifier == "u":
            continue
        if modifier not in _REGEX_FLAGS:
            return None
        flags |= _REGEX_FLAGS[modifier]
    try:
        return re.compile(body, flags)
    except re.error:
        return None


@dataclass
class FieldCheck:
    definition: FieldDefinition
    value: Any
    submitted: dict[str, Any]
    record_id: Optional[int]
    context: RequestContext


class Validator(Protocol):
    async def validate(self, check: FieldCheck) -> Optional[str]: ...


class RequiredValidator:
    async def validate(self, check: FieldCheck) -> Optional[str]:
        return "empty" if is_empty(check.value) else None


class PatternValidator:
    def __init__(self, pattern: re.Pattern, error_type: str = "invalid"):
        self.pattern = pattern
        self.error_type = error_type

    async def validate(self, check: FieldCheck) -> Optional[str]:
        if is_empty(check.value):
            return None
        values = check.value if isinstance(check.value, (list, tuple)) else [check.value]
        for value in values:
            if self.pattern.search(str(value)) is None:
                return self.error_type
        return None


class MatchFieldValidator:
    """The value must equal another submitted field (e.g. confirm email)."""

    def __init__(self, other_field: str):
        self.other_field = other_field

    async def validate(self, check: FieldCheck) -> Optional[str]:
        other = check.submitted.get(self.other_field)
        if str(check.value if check.value is not None else "").strip() != str(
            other if other is not None else ""
        ).strip():
            return "nonmatching"
        return None


class UniqueValidator:
    def __init__(self, store: RecordStore):
        self.store = store

    async def validate(self, check: FieldCheck) -> Optional[str]:
        if is_empty(check.value):
            return None
        ids = await self.store.query_by_field_equal(check.definition.name, check.value)
        if any(record_id != check.record_id for record_id in ids):
            return "duplicate"
        return None


class CaptchaValidator:
    async def validate(self, check: FieldCheck) -> Optional[str]:
        expected = check.context.captcha_answer
        if expected is None or is_empty(check.value):
            return "captcha"
        if str(check.value).strip().lower() != str(expected).strip().lower():
            return "captcha"
        return None


class ValidatorRegistry:
    """Named validators, plus the regex and match-field rule forms."""

    def __init__(self) -> None:
        self._validators: dict[str, Validator] = {}

    def register(self, name: str, validator: Validator) -> None:
        self._validators[name] = validator

    def named(self, name: str) -> Optional[Validator]:
        return self._validators.get(name)

    def names(self) -> list[str]:
        return sorted(self._validators)

    def resolve(self, definition: FieldDefinition, submitted: dict[str, Any]) -> Optional[Validator]:
        rule = definition.validation
        if rule is None or rule in ("", "no"):
            return None
        if rule in self._validators:
            return self._validators[rule]
        # legacy key for the email pattern
        if rule == "email" and definition.name == "email":
            return self._validators.get("email-regex")
        pattern = compile_delimited(rule)
        if pattern is not None:
            return PatternValidator(pattern)
        if rule in submitted:
            return MatchFieldValidator(rule)
        logger.debug("Validation rule %r on %s is not defined; passing", rule, definition.name)
        return None


def default_validators(store: RecordStore) -> ValidatorRegistry:
    registry = ValidatorRegistry()
    registry.register("yes", RequiredValidator())
    registry.register("email-regex", PatternValidator(EMAIL_PATTERN))
    registry.register("unique", UniqueValidator(store))
    registry.register("captcha", CaptchaValidator())
    return registry
