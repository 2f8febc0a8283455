"""Record resolution and upsert pipeline.

Components, leaves first:
- store: RecordStore interface and the SQLAlchemy adapter
- cache: windowed read-through RecordCache
- resolver: RecordMatchResolver and the strict/update/block policies
- validators / assembly: field validation and column assembly
- persistence: PersistenceExecutor, the single atomic write
- processor: SubmissionProcessor.process_submission, the public entry point
"""
from records.cache import RecordCache
from records.context import RequestContext
from records.errors import (
    DatabaseError,
    DuplicateAmbiguousError,
    NotFoundError,
    RecordsError,
    ValidationError,
)
from records.processor import SubmissionProcessor
from records.registry import FieldRegistry, SqlFieldRegistry, StaticFieldRegistry
from records.store import RecordStore, SqlRecordStore

__all__ = [
    "RecordCache", "RequestContext",
    "RecordsError", "DatabaseError", "DuplicateAmbiguousError", "NotFoundError", "ValidationError",
    "SubmissionProcessor",
    "FieldRegistry", "SqlFieldRegistry", "StaticFieldRegistry",
    "RecordStore", "SqlRecordStore",
]
