"""Field registry repository: ordered field definitions."""
import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import FieldDefinitionRow

logger = logging.getLogger(__name__)


async def list_fields(session: AsyncSession) -> list[FieldDefinitionRow]:
    """Return every field definition in display order."""
    result = await session.execute(
        select(FieldDefinitionRow).order_by(FieldDefinitionRow.position, FieldDefinitionRow.id)
    )
    return list(result.scalars().all())


async def upsert(session: AsyncSession, data: dict) -> FieldDefinitionRow:
    """Insert or update a field definition by name (dedup key).

    data dict keys: name, title, field_group, form_element, validation,
    persistent, default_value, readonly, options, position
    """
    stmt = (
        pg_insert(FieldDefinitionRow)
        .values(**data)
        .on_conflict_do_update(
            index_elements=["name"],
            set_={k: v for k, v in data.items() if k != "name"},
        )
        .returning(FieldDefinitionRow)
    )
    result = await session.execute(stmt, execution_options={"populate_existing": True})
    await session.flush()
    return result.scalar_one()
