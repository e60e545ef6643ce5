"""Attendance Service — live ingestion, salt issuance, telemetry relay and session close.

Invariants:
    - Validation and not-found checks run before any salt derivation or ledger mutation
    - A duplicate tap (pseudonym already in the ledger) is never re-published
    - A live tap is claimed before it is published and enters the ledger only
      after the ordering service accepted it; a failed publish releases the
      claim so the device can retry
    - A second tap arriving while the first is being published gets
      TapInFlightError (409), never a duplicate acknowledgement
    - Pseudonyms must be "0x" followed by 64 hex digits
    - Raw identity tokens stay inside the reconciliation engine; nothing returned
      from here carries one

Design Decisions:
    - Thin orchestration over core/ pure functions; routes only translate HTTP
    - Telemetry is relayed as-is (no sensor schema) to the telemetry topic
"""

import logging
from dataclasses import dataclass

from eduair.core.crypto import PSEUDONYM_LENGTH, derive_session_salt, is_pseudonym
from eduair.core.domain_types import (
    AttendanceRecord, AttendanceStatus, ClassId, EpochMillis, Pseudonym,
    RecordType, SequenceMarker, SessionId, SessionInfo, SessionSalt,
)
from eduair.core.errors import (
    ErrorContext, NotFoundError, TapInFlightError, ValidationError,
)
from eduair.core.repository_protocols import LedgerStore, Publisher, RosterStore
from eduair.core.time_classifier import classify, now_ms, parse_iso_ms
from eduair.core.topics import TopicRouting
from eduair.services.reconciliation_engine import (
    CloseSessionResult, ReconciliationEngine,
)

logger = logging.getLogger(__name__)

MAX_IDENTIFIER_LENGTH = 100
UNKNOWN = "unknown"


@dataclass(frozen=True)
class IngestResult:
    status: AttendanceStatus
    sequence_marker: SequenceMarker | None
    topic_id: str | None
    duplicate: bool = False


@dataclass(frozen=True)
class TelemetryResult:
    sequence_marker: SequenceMarker
    topic_id: str | None


def require_field(value: str | None, name: str, max_length: int = MAX_IDENTIFIER_LENGTH) -> str:
    """Strip and check a required string field."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"Missing required field: {name}", field=name)
    if len(cleaned) > max_length:
        raise ValidationError(f"Field too long: {name}", field=name)
    return cleaned


class AttendanceService:

    def __init__(
        self,
        ledger: LedgerStore,
        publisher: Publisher,
        roster_store: RosterStore,
        routing: TopicRouting,
        salt_secret: str,
        late_tolerance_min: float,
    ):
        self.ledger = ledger
        self.publisher = publisher
        self.roster_store = roster_store
        self.routing = routing
        self.salt_secret = salt_secret
        self.late_tolerance_min = late_tolerance_min
        self.engine = ReconciliationEngine(ledger, publisher, routing)

    def session_salt(self, class_id: str | None, session_start_iso: str | None) -> SessionSalt:
        """Salt a device needs to pseudonymize taps locally. No mutation."""
        class_id = require_field(class_id, "classId")
        start = require_field(session_start_iso, "start")
        return derive_session_salt(self.salt_secret, class_id, start)

    def find_session_or_raise(self, class_id: str, session_id: str) -> SessionInfo:
        session = self.roster_store.find_session(class_id, session_id)
        if session is None:
            raise NotFoundError(
                "Session", f"{class_id}:{session_id}",
                ErrorContext(class_id=class_id, session_id=session_id),
            )
        return session

    async def ingest_attendance(
        self,
        class_id: str | None,
        session_id: str | None,
        pseudonym: str | None,
        event_timestamp: int | None = None,
    ) -> IngestResult:
        """Classify, record and publish one pseudonymized tap."""
        class_id = ClassId(require_field(class_id, "classId"))
        session_id = SessionId(require_field(session_id, "sessionId"))
        pseudonym = Pseudonym(require_field(pseudonym, "pseudonym", PSEUDONYM_LENGTH))
        if not is_pseudonym(pseudonym):
            raise ValidationError("pseudonym must be 0x followed by 64 hex digits", field="pseudonym")
        if event_timestamp is not None and event_timestamp < 0:
            raise ValidationError("eventTimestamp must be non-negative", field="eventTimestamp")

        session = self.find_session_or_raise(class_id, session_id)
        ts = EpochMillis(event_timestamp if event_timestamp is not None else now_ms())
        status = classify(ts, parse_iso_ms(session.start_iso), self.late_tolerance_min)
        topic_id = self.routing.resolve(RecordType.ATTENDANCE)
        context = ErrorContext(class_id=class_id, session_id=session_id, topic_id=topic_id)

        claim = await self.ledger.begin_presence(class_id, session_id, pseudonym)
        if claim.in_flight:
            raise TapInFlightError(context=context)
        if claim.already_present:
            logger.info(
                "Duplicate tap suppressed",
                extra={"class_id": class_id, "session_id": session_id},
            )
            return IngestResult(status, None, topic_id, duplicate=True)

        record = AttendanceRecord(class_id, session_id, pseudonym, status, ts)
        published = False
        try:
            marker = await self.publisher.publish(topic_id, record.to_payload())
            published = True
        finally:
            if not published:
                await self.ledger.abandon_presence(class_id, session_id, pseudonym)
        await self.ledger.commit_presence(class_id, session_id, pseudonym, status)
        return IngestResult(status, marker, topic_id)

    async def ingest_telemetry(
        self,
        sensors: dict | None,
        class_id: str | None = None,
        session_id: str | None = None,
        device_id: str | None = None,
        ts: int | None = None,
    ) -> TelemetryResult:
        """Relay one telemetry sample to the telemetry topic."""
        if not sensors:
            raise ValidationError("Missing sensors object", field="sensors")
        payload = {
            "type": RecordType.TELEMETRY.value,
            "classId": class_id or UNKNOWN,
            "sessionId": session_id or UNKNOWN,
            "deviceId": device_id or UNKNOWN,
            "sensors": sensors,
            "ts": ts if ts is not None else now_ms(),
        }
        topic_id = self.routing.resolve(RecordType.TELEMETRY)
        marker = await self.publisher.publish(topic_id, payload)
        return TelemetryResult(marker, topic_id)

    async def close_session(
        self, class_id: str | None, session_id: str | None,
    ) -> CloseSessionResult:
        """Resolve the session and roster, then run reconciliation."""
        class_id = ClassId(require_field(class_id, "classId"))
        session_id = SessionId(require_field(session_id, "sessionId"))
        session = self.find_session_or_raise(class_id, session_id)
        roster = self.roster_store.get_roster(class_id)
        if roster is None:
            raise NotFoundError("Roster", class_id, ErrorContext(class_id=class_id))

        return await self.engine.close_session(
            class_id, session_id, roster, self.salt_secret, session.start_iso,
        )
