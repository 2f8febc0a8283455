"""Per-request state passed through the submission call chain."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RequestContext:
    """Everything one submission needs besides the submitted values.

    ``errors`` maps field name to error type and ``messages`` to the
    rendered message; both are filled by the validation engine.
    """

    label: str = "process_submission"
    privileged: bool = False
    captcha_answer: Optional[str] = None
    previous_record_id: Optional[int] = None
    errors: dict[str, str] = field(default_factory=dict)
    messages: dict[str, str] = field(default_factory=dict)

    def add_error(self, field_name: str, error_type: str, message: str, overwrite: bool = False) -> None:
        if overwrite or field_name not in self.errors:
            self.errors[field_name] = error_type
            self.messages[field_name] = message

    def has_errors(self) -> bool:
        return bool(self.errors)

    def clear_errors(self) -> None:
        self.errors.clear()
        self.messages.clear()
