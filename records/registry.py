"""Field Registry implementations.

The pipeline only reads field definitions. Registries are passed in
explicitly; there is no process-wide field list.
"""
import logging
from typing import Optional, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import db.repositories.fields as field_repo
from db.models import FieldDefinitionRow
from records.cache import RecordCache
from records.errors import DatabaseError
from schemas import FieldDefinition, FormElementKind

logger = logging.getLogger(__name__)


class FieldRegistry(Protocol):
    def fields(self) -> list[FieldDefinition]: ...


class StaticFieldRegistry:
    """A fixed, ordered set of field definitions."""

    def __init__(self, fields: Sequence[FieldDefinition]):
        names = [f.name for f in fields]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate field names in registry: {names}")
        self._fields = list(fields)

    def fields(self) -> list[FieldDefinition]:
        return list(self._fields)

    def get(self, name: str) -> Optional[FieldDefinition]:
        for definition in self._fields:
            if definition.name == name:
                return definition
        return None


def row_to_definition(row: FieldDefinitionRow) -> FieldDefinition:
    return FieldDefinition(
        name=row.name,
        title=row.title,
        group=row.field_group,
        form_element=FormElementKind(row.form_element),
        validation=row.validation,
        persistent=row.persistent,
        default=row.default_value,
        readonly=row.readonly,
        options=list(row.options or []),
    )


def definition_to_row_data(definition: FieldDefinition, position: int) -> dict:
    return {
        "name": definition.name,
        "title": definition.title,
        "field_group": definition.group,
        "form_element": definition.form_element.value,
        "validation": definition.validation,
        "persistent": definition.persistent,
        "default_value": definition.default,
        "readonly": definition.readonly,
        "options": list(definition.options),
        "position": position,
    }


class SqlFieldRegistry(StaticFieldRegistry):
    """Field definitions loaded from the ``fields`` table.

    Call ``refresh`` once per request (or after edits); ``fields()`` then
    serves the loaded snapshot.
    """

    def __init__(self) -> None:
        super().__init__([])

    async def refresh(self, session: AsyncSession) -> list[FieldDefinition]:
        try:
            rows = await field_repo.list_fields(session)
        except SQLAlchemyError as exc:
            raise DatabaseError(str(exc)) from exc
        self._fields = [row_to_definition(row) for row in rows]
        logger.debug("Loaded %d field definition(s)", len(self._fields))
        return self.fields()


async def save_field(
    session: AsyncSession,
    definition: FieldDefinition,
    position: int,
    cache: Optional[RecordCache] = None,
) -> FieldDefinition:
    """Insert or update a field definition.

    A field change can alter how stored values are read, so every cached
    record is dropped.
    """
    try:
        row = await field_repo.upsert(session, definition_to_row_data(definition, position))
    except SQLAlchemyError as exc:
        raise DatabaseError(str(exc)) from exc
    if cache is not None:
        cache.invalidate_all()
    logger.info("Saved field definition %s", definition.name)
    return row_to_definition(row)
