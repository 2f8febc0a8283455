"""SQLAlchemy 2.0 ORM models for the participant record store.

Two tables:
  - participants: one row per record; field values live in the ``data`` JSON
    column keyed by field name
  - fields: the field registry, ordered by ``position``
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


# JSONB on PostgreSQL so ``data->>'field'`` equality can use an expression index
_DataType = JSON().with_variant(postgresql.JSONB(), "postgresql")


class Participant(Base):
    """participants: one submitted record."""

    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("private_id", name="uq_participant_private_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    private_id: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(_DataType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class FieldDefinitionRow(Base):
    """fields: field registry entries."""

    __tablename__ = "fields"
    __table_args__ = (
        UniqueConstraint("name", name="uq_field_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    field_group: Mapped[str] = mapped_column(Text, nullable=False, server_default="main")
    form_element: Mapped[str] = mapped_column(Text, nullable=False, server_default="text-line")
    validation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    persistent: Mapped[bool] = mapped_column(Boolean, server_default="false", nullable=False)
    default_value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    readonly: Mapped[bool] = mapped_column(Boolean, server_default="false", nullable=False)
    options: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
