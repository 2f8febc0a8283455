"""Match decisions and submission outcomes."""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Match decisions (never persisted)
# ---------------------------------------------------------------------------


class Insert(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["insert"] = "insert"


class Update(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["update"] = "update"
    record_id: int


class Skip(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["skip"] = "skip"
    reason: str
    record_id: Optional[int] = None
    field: Optional[str] = None
    reported: bool = False  # strict policy surfaces the duplicate to the user


MatchDecision = Union[Insert, Update, Skip]


# ---------------------------------------------------------------------------
# Outcomes returned by process_submission
# ---------------------------------------------------------------------------


class Success(BaseModel):
    kind: Literal["success"] = "success"
    record_id: int
    private_id: str
    action: Literal["insert", "update"]


class ValidationFailed(BaseModel):
    kind: Literal["validation_error"] = "validation_error"
    errors: dict[str, str]


class DatabaseFailure(BaseModel):
    kind: Literal["database_error"] = "database_error"
    message: str = "The record could not be saved."


class Skipped(BaseModel):
    kind: Literal["skip"] = "skip"
    reason: str
    record_id: Optional[int] = None
    field: Optional[str] = None
    reported: bool = False
    message: Optional[str] = None


class NotFound(BaseModel):
    kind: Literal["not_found"] = "not_found"
    record_id: int


class DuplicateAmbiguous(BaseModel):
    kind: Literal["duplicate_ambiguous"] = "duplicate_ambiguous"
    field: str
    candidates: List[int]


SubmissionOutcome = Annotated[
    Union[Success, ValidationFailed, DatabaseFailure, Skipped, NotFound, DuplicateAmbiguous],
    Field(discriminator="kind"),
]
