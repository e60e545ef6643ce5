"""Reconciliation Engine — marks roster members with no recorded presence as absent.

Invariants:
    - The session salt is re-derived from the recorded session start (same as live ingestion)
    - Snapshot + reservation happen under the session's exclusive lock; publishing
      happens outside it
    - Publish-then-commit: a pseudonym enters the ledger only after its absent
      record was accepted by the ordering service
    - A failed publish releases the reservation and leaves the ledger untouched,
      so a retried close re-attempts exactly the failed members
    - One failed publish never aborts the remaining absentees
    - A second close (sequential or concurrent) never re-publishes a member the
      first one published or is still publishing
    - Reservations are always released, even if an unexpected error escapes,
      except for a member whose ledger commit failed after a successful
      publish: its reservation stays held so no later close re-publishes it
    - Members whose live tap is still being published are neither attended
      nor marked absent; they count towards in_flight
"""

import logging
from dataclasses import dataclass, field

from eduair.core.crypto import derive_session_salt
from eduair.core.domain_types import (
    AttendanceRecord, AttendanceStatus, ClassId, EpochMillis, Pseudonym,
    RecordType, RosterEntry, SequenceMarker, SessionId, StudentId,
)
from eduair.core.errors import DatabaseError, PublishError
from eduair.core.reconciliation import AbsenteeCandidate, plan_reconciliation
from eduair.core.repository_protocols import LedgerStore, Publisher
from eduair.core.time_classifier import now_ms
from eduair.core.topics import TopicRouting

logger = logging.getLogger(__name__)

PUBLISH_FAILED = "PublishFailed"
COMMIT_FAILED = "CommitFailed"


@dataclass(frozen=True)
class MarkedAbsent:
    student_id: StudentId
    pseudonym: Pseudonym
    sequence_marker: SequenceMarker


@dataclass(frozen=True)
class AbsenteeFailure:
    student_id: StudentId
    pseudonym: Pseudonym
    message: str
    kind: str = PUBLISH_FAILED
    sequence_marker: SequenceMarker | None = None


@dataclass
class CloseSessionResult:
    class_id: ClassId
    session_id: SessionId
    total_roster: int
    attended: int
    absentees: list[MarkedAbsent] = field(default_factory=list)
    failures: list[AbsenteeFailure] = field(default_factory=list)
    in_flight: int = 0

    @property
    def marked_absent(self) -> int:
        return len(self.absentees)

    @property
    def failed(self) -> int:
        return len(self.failures)


class ReconciliationEngine:
    """Diff-and-emit pass over one session, run at session close."""

    def __init__(
        self, ledger: LedgerStore, publisher: Publisher, routing: TopicRouting,
    ):
        self.ledger = ledger
        self.publisher = publisher
        self.routing = routing

    async def close_session(
        self,
        class_id: ClassId,
        session_id: SessionId,
        roster: list[RosterEntry],
        secret_key: str,
        session_start_iso: str,
        close_time_ms: EpochMillis | None = None,
    ) -> CloseSessionResult:
        salt = derive_session_salt(secret_key, class_id, session_start_iso)
        close_ms = close_time_ms if close_time_ms is not None else now_ms()

        async with self.ledger.exclusive(class_id, session_id) as view:
            plan = plan_reconciliation(
                roster, salt, await view.entries(), view.pending(),
            )
            reserved = set(view.reserve([c.pseudonym for c in plan.candidates]))

        result = CloseSessionResult(
            class_id=class_id,
            session_id=session_id,
            total_roster=plan.roster_size,
            attended=plan.attended,
            in_flight=len(plan.in_flight) + len(plan.candidates) - len(reserved),
        )
        pending = [c for c in plan.candidates if c.pseudonym in reserved]
        try:
            while pending:
                await self._emit_absent(pending[0], close_ms, result)
                pending.pop(0)
        finally:
            for candidate in pending:
                await self.ledger.release_reservation(
                    class_id, session_id, candidate.pseudonym,
                )

        logger.info(
            f"Session closed: {result.marked_absent} absent, {result.failed} failed, "
            f"{result.in_flight} in flight",
            extra={"class_id": class_id, "session_id": session_id},
        )
        return result

    async def _emit_absent(
        self, candidate: AbsenteeCandidate, close_ms: EpochMillis,
        result: CloseSessionResult,
    ) -> None:
        """Publish one absent record, then commit it to the ledger."""
        record = AttendanceRecord(
            class_id=result.class_id,
            session_id=result.session_id,
            pseudonym=candidate.pseudonym,
            status=AttendanceStatus.ABSENT,
            event_timestamp=close_ms,
        )
        try:
            marker = await self.publisher.publish(
                self.routing.resolve(RecordType.ATTENDANCE), record.to_payload(),
            )
        except PublishError as e:
            await self.ledger.release_reservation(
                result.class_id, result.session_id, candidate.pseudonym,
            )
            logger.warning(
                f"Absent record for {candidate.student_id} not published: {e.message}",
                extra={
                    "class_id": result.class_id, "session_id": result.session_id,
                    "error_code": e.code,
                },
            )
            result.failures.append(AbsenteeFailure(
                student_id=candidate.student_id,
                pseudonym=candidate.pseudonym,
                message=e.message,
            ))
            return

        try:
            await self.ledger.commit_absentee(
                result.class_id, result.session_id, candidate.pseudonym,
            )
        except DatabaseError as e:
            logger.error(
                f"Absent record for {candidate.student_id} published but not recorded: "
                f"{e.message}",
                extra={
                    "class_id": result.class_id, "session_id": result.session_id,
                    "error_code": e.code,
                },
            )
            result.failures.append(AbsenteeFailure(
                student_id=candidate.student_id,
                pseudonym=candidate.pseudonym,
                message=e.message,
                kind=COMMIT_FAILED,
                sequence_marker=marker,
            ))
            return

        result.absentees.append(MarkedAbsent(
            student_id=candidate.student_id,
            pseudonym=candidate.pseudonym,
            sequence_marker=marker,
        ))
