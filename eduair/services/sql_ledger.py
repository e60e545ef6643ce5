"""Database Ledger — durable ledger backend on SQLAlchemy async sessions.

Invariants:
    - Same locking and reservation discipline as InMemoryLedger (SessionLockingLedger)
    - A unique-constraint violation on insert means "already present", never an error
    - Claims and reservations stay in process memory; only committed presence
      is persisted

Design Decisions:
    - Existence checked with a SELECT under the session lock first; the
      IntegrityError path only covers writers in other processes
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from eduair.core.domain_types import AttendanceStatus, Pseudonym
from eduair.infrastructure.database import DatabaseSessionManager
from eduair.models.presence import PresenceRecord
from eduair.services.ledger import SessionLockingLedger

logger = logging.getLogger(__name__)


class DatabaseLedger(SessionLockingLedger):
    """Ledger persisted in the attendance_presence table."""

    def __init__(self, db_manager: DatabaseSessionManager):
        super().__init__()
        self._db = db_manager

    async def _load(self, class_id, session_id) -> dict[Pseudonym, AttendanceStatus]:
        async with self._db.session() as db:
            result = await db.execute(
                select(PresenceRecord.pseudonym, PresenceRecord.status).where(
                    PresenceRecord.class_id == class_id,
                    PresenceRecord.session_id == session_id,
                ),
            )
            return {
                Pseudonym(pseudonym): AttendanceStatus(status)
                for pseudonym, status in result.all()
            }

    async def _insert(self, class_id, session_id, pseudonym, status) -> bool:
        async with self._db.session() as db:
            existing = await db.execute(
                select(PresenceRecord.id).where(
                    PresenceRecord.class_id == class_id,
                    PresenceRecord.session_id == session_id,
                    PresenceRecord.pseudonym == pseudonym,
                ),
            )
            if existing.scalar_one_or_none() is not None:
                return False
            db.add(PresenceRecord(
                class_id=class_id, session_id=session_id,
                pseudonym=pseudonym, status=AttendanceStatus(status).value,
            ))
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.info(
                    "Concurrent writer recorded pseudonym first",
                    extra={"class_id": class_id, "session_id": session_id},
                )
                return False
        return True

    async def _get(self, class_id, session_id, pseudonym) -> AttendanceStatus | None:
        async with self._db.session() as db:
            result = await db.execute(
                select(PresenceRecord.status).where(
                    PresenceRecord.class_id == class_id,
                    PresenceRecord.session_id == session_id,
                    PresenceRecord.pseudonym == pseudonym,
                ),
            )
            status = result.scalar_one_or_none()
        return AttendanceStatus(status) if status is not None else None

    async def _set_status(self, class_id, session_id, pseudonym, status) -> None:
        async with self._db.session() as db:
            await db.execute(
                update(PresenceRecord).where(
                    PresenceRecord.class_id == class_id,
                    PresenceRecord.session_id == session_id,
                    PresenceRecord.pseudonym == pseudonym,
                ).values(status=AttendanceStatus(status).value),
            )
            await db.commit()
