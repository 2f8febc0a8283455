"""Exceptions raised inside the record pipeline.

The submission processor turns these into outcome values; nothing outside
``records`` needs to catch them except callers of the store adapters.
"""
from typing import Optional


class RecordsError(Exception):
    """Base class for record pipeline errors."""


class DatabaseError(RecordsError):
    """The record store failed; the current request cannot continue."""


class NotFoundError(RecordsError):
    def __init__(self, record_id: int):
        super().__init__(f"record {record_id} does not exist")
        self.record_id = record_id


class DuplicateAmbiguousError(RecordsError):
    def __init__(self, field: str, candidates: list[int]):
        super().__init__(
            f"{len(candidates)} records match on {field!r}: {candidates}"
        )
        self.field = field
        self.candidates = candidates


class ValidationError(RecordsError):
    """Carries every per-field message collected for one submission."""

    def __init__(self, errors: dict[str, str], error_types: Optional[dict[str, str]] = None):
        super().__init__(f"{len(errors)} field(s) failed validation: {sorted(errors)}")
        self.errors = errors
        self.error_types = error_types or {}
