from .fields import FieldDefinition, FormElementKind, Record
from .submission import MatchingPolicy, PolicyName, Submission
from .outcomes import (
    Insert,
    Update,
    Skip,
    MatchDecision,
    Success,
    ValidationFailed,
    DatabaseFailure,
    Skipped,
    NotFound,
    DuplicateAmbiguous,
    SubmissionOutcome,
)

__all__ = [
    "FieldDefinition", "FormElementKind", "Record",
    "MatchingPolicy", "PolicyName", "Submission",
    "Insert", "Update", "Skip", "MatchDecision",
    "Success", "ValidationFailed", "DatabaseFailure", "Skipped", "NotFound",
    "DuplicateAmbiguous", "SubmissionOutcome",
]
