"""Participant repository: point reads, equality lookups and writes."""
import json
import logging
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Participant

logger = logging.getLogger(__name__)


def _match_text(value: Any) -> str:
    """Render a value the way ``data->>'field'`` renders it."""
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


async def get_by_id(session: AsyncSession, record_id: int) -> Optional[Participant]:
    """Return the Participant with this id, or None."""
    return await session.get(Participant, record_id)


async def get_by_private_id(session: AsyncSession, private_id: str) -> Optional[Participant]:
    """Return the Participant with this private id, or None."""
    result = await session.execute(
        select(Participant).where(Participant.private_id == private_id)
    )
    return result.scalar_one_or_none()


async def ids_by_field_value(session: AsyncSession, field: str, value: Any) -> list[int]:
    """Return ids of every participant whose ``field`` equals ``value``, lowest first."""
    result = await session.execute(
        select(Participant.id)
        .where(Participant.data[field].as_string() == _match_text(value))
        .order_by(Participant.id)
    )
    return [row[0] for row in result.all()]


async def get_many(session: AsyncSession, ids: Sequence[int]) -> list[Participant]:
    """Return the participants with these ids, in id order."""
    if not ids:
        return []
    result = await session.execute(
        select(Participant).where(Participant.id.in_(list(ids))).order_by(Participant.id)
    )
    return list(result.scalars().all())


async def ordered_ids(
    session: AsyncSession,
    sort_field: Optional[str] = None,
    descending: bool = False,
) -> list[int]:
    """Return all participant ids in list order.

    With no sort field the order is ascending id. Ties on the sort field are
    broken by id so the order is stable between loads.
    """
    stmt = select(Participant.id)
    if sort_field:
        key = Participant.data[sort_field].as_string()
        stmt = stmt.order_by(key.desc() if descending else key.asc(), Participant.id)
    else:
        stmt = stmt.order_by(Participant.id.desc() if descending else Participant.id)
    result = await session.execute(stmt)
    return [row[0] for row in result.all()]


async def max_id(session: AsyncSession) -> int:
    """Return the highest assigned id, 0 when the table is empty."""
    result = await session.execute(select(func.max(Participant.id)))
    return result.scalar_one_or_none() or 0


async def private_id_exists(session: AsyncSession, private_id: str) -> bool:
    result = await session.execute(
        select(Participant.id).where(Participant.private_id == private_id)
    )
    return result.scalar_one_or_none() is not None


async def insert(session: AsyncSession, private_id: str, data: dict) -> Participant:
    """Insert a new participant and flush so the id is assigned."""
    participant = Participant(private_id=private_id, data=dict(data))
    session.add(participant)
    await session.flush()
    return participant


async def update(session: AsyncSession, record_id: int, data: dict) -> Optional[Participant]:
    """Merge ``data`` into an existing participant's values.

    The row is locked for the rest of the transaction. Returns None when the
    id does not exist.
    """
    result = await session.execute(
        select(Participant).where(Participant.id == record_id).with_for_update()
    )
    participant = result.scalar_one_or_none()
    if participant is None:
        return None
    participant.data = {**participant.data, **data}
    await session.flush()
    return participant
