"""Unique index on participants.data->>'email' for concurrent dedup.

Two submissions racing on the same email both resolve to insert; this index
lets only one of them commit. Empty emails are excluded.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from alembic import op

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        "CREATE UNIQUE INDEX uq_participant_email ON participants ((data->>'email')) "
        "WHERE coalesce(data->>'email', '') <> ''"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS uq_participant_email")
