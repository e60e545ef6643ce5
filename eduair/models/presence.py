"""Presence ORM — one row per pseudonym recorded in a session ledger.

Invariants:
    - (class_id, session_id, pseudonym) is unique: the ledger set semantics
      are enforced by the database as well as by the session lock
    - status is one of AttendanceStatus values (on_time | late | absent)
    - Rows are never updated; a failed publication deletes its row
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import Uuid

from eduair.db.base import Base


class PresenceRecord(Base):
    __tablename__ = "attendance_presence"
    __table_args__ = (
        UniqueConstraint(
            "class_id", "session_id", "pseudonym",
            name="uq_presence_class_session_pseudonym",
        ),
        Index("ix_presence_class_session", "class_id", "session_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    class_id: Mapped[str] = mapped_column(String(100), nullable=False)
    session_id: Mapped[str] = mapped_column(String(100), nullable=False)
    pseudonym: Mapped[str] = mapped_column(String(66), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
