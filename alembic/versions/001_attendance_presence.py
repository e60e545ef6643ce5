"""Initial schema — attendance_presence ledger table.

Revision ID: 001_attendance_presence
Revises: None
Create Date: 2025-10-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_attendance_presence"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "attendance_presence",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("class_id", sa.String(100), nullable=False),
        sa.Column("session_id", sa.String(100), nullable=False),
        sa.Column("pseudonym", sa.String(66), nullable=False),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column(
            "recorded_at", sa.DateTime(timezone=True),
            nullable=False, server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "class_id", "session_id", "pseudonym",
            name="uq_presence_class_session_pseudonym",
        ),
    )
    op.create_index(
        "ix_presence_class_session", "attendance_presence", ["class_id", "session_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_presence_class_session", table_name="attendance_presence")
    op.drop_table("attendance_presence")
