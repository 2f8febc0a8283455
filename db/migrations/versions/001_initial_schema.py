"""Initial schema: participants and fields tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "participants",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("private_id", sa.Text, nullable=False),
        sa.Column("data", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("private_id", name="uq_participant_private_id"),
    )

    op.create_table(
        "fields",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("title", sa.Text, nullable=True),
        sa.Column("field_group", sa.Text, nullable=False, server_default="main"),
        sa.Column("form_element", sa.Text, nullable=False, server_default="text-line"),
        sa.Column("validation", sa.Text, nullable=True),
        sa.Column("persistent", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("default_value", sa.JSON, nullable=True),
        sa.Column("readonly", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("options", sa.JSON, nullable=True),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.UniqueConstraint("name", name="uq_field_name"),
    )


def downgrade() -> None:
    op.drop_table("fields")
    op.drop_table("participants")
