"""Add per-owner indexes used by dashboard and report queries

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INDEXES = {
    "ix_tasks_owner_scheduled": "owner_id, scheduled_date",
    "ix_tasks_owner_status": "owner_id, status",
    "ix_tasks_owner_created": "owner_id, created_at",
    "ix_tasks_owner_completed": "owner_id, completed_at",
}


def upgrade() -> None:
    conn = op.get_bind()
    for name, columns in INDEXES.items():
        conn.execute(text(f"CREATE INDEX IF NOT EXISTS {name} ON tasks ({columns})"))


def downgrade() -> None:
    conn = op.get_bind()
    for name in INDEXES:
        conn.execute(text(f"DROP INDEX IF EXISTS {name}"))
