"""Submission and matching policy schemas."""
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field


PolicyName = Literal["strict", "update", "block"]


class MatchingPolicy(BaseModel):
    policy: PolicyName = "update"
    fields: List[str] = Field(default_factory=list)  # priority order
    reject_ambiguous: bool = False


class Submission(BaseModel):
    values: dict[str, Any] = Field(default_factory=dict)
    record_id_hint: Optional[int] = None
    expected_fields: Optional[List[str]] = None
    matching_policy: MatchingPolicy = Field(default_factory=MatchingPolicy)
