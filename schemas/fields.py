"""Field definition and record schemas."""
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FormElementKind(str, Enum):
    TEXT_LINE = "text-line"
    TEXT_AREA = "text-area"
    RICH_TEXT = "rich-text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    DATE = "date"
    NUMERIC = "numeric"
    DECIMAL = "decimal"
    CURRENCY = "currency"
    DROPDOWN_OTHER = "dropdown-other"
    MULTI_CHECKBOX = "multi-checkbox"
    MULTI_DROPDOWN = "multi-dropdown"
    SELECT_OTHER = "select-other"
    MULTI_SELECT_OTHER = "multi-select-other"
    LINK = "link"
    IMAGE_UPLOAD = "image-upload"
    FILE_UPLOAD = "file-upload"
    HIDDEN = "hidden"
    PASSWORD = "password"
    CAPTCHA = "captcha"
    PLACEHOLDER = "placeholder"
    TIMESTAMP = "timestamp"

    @property
    def is_stored(self) -> bool:
        """False for elements that never have a column in the record table."""
        return self not in (FormElementKind.CAPTCHA, FormElementKind.PLACEHOLDER)

    @property
    def is_multi(self) -> bool:
        return self in (
            FormElementKind.MULTI_CHECKBOX,
            FormElementKind.MULTI_DROPDOWN,
            FormElementKind.MULTI_SELECT_OTHER,
            FormElementKind.LINK,
        )


class FieldDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    title: Optional[str] = None
    group: str = "main"
    form_element: FormElementKind = FormElementKind.TEXT_LINE
    validation: Optional[str] = None  # "yes", "email-regex", "unique", "captcha", a regex or a field name
    persistent: bool = False
    default: Any = None
    readonly: bool = False
    options: List[str] = Field(default_factory=list)

    @property
    def label(self) -> str:
        if self.title:
            return self.title
        return self.name.replace("_", " ").replace("-", " ").title()


class Record(BaseModel):
    id: int
    private_id: str
    values: dict[str, Any] = Field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)
