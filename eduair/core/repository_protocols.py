"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection (app.state)

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Ledger and publisher methods are async because implementations do IO;
      the roster store is a synchronous keyed lookup
"""

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Protocol

from eduair.core.domain_types import (
    AttendanceStatus, ClassId, Pseudonym, RosterEntry, SequenceMarker,
    SessionId, SessionInfo,
)


@dataclass(frozen=True)
class PresenceResult:
    already_present: bool
    in_flight: bool = False


class ReconciliationView(Protocol):
    """Ledger view valid only while the session's exclusive lock is held."""
    async def entries(self) -> dict[Pseudonym, AttendanceStatus]: ...
    def pending(self) -> set[Pseudonym]: ...
    def reserve(self, pseudonyms: list[Pseudonym]) -> list[Pseudonym]: ...


class LedgerStore(Protocol):
    """Contract for the per-session attendance ledger — implemented by shell."""
    async def record_presence(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
        status: AttendanceStatus = AttendanceStatus.ON_TIME,
    ) -> PresenceResult: ...
    async def begin_presence(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
    ) -> PresenceResult: ...
    async def commit_presence(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
        status: AttendanceStatus,
    ) -> None: ...
    async def abandon_presence(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
    ) -> None: ...
    async def snapshot(
        self, class_id: ClassId, session_id: SessionId,
    ) -> set[Pseudonym]: ...
    async def statuses(
        self, class_id: ClassId, session_id: SessionId,
    ) -> dict[Pseudonym, AttendanceStatus]: ...
    async def size(self, class_id: ClassId, session_id: SessionId) -> int: ...
    def exclusive(
        self, class_id: ClassId, session_id: SessionId,
    ) -> AbstractAsyncContextManager[ReconciliationView]: ...
    async def commit_absentee(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
    ) -> bool: ...
    async def release_reservation(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
    ) -> None: ...


class Publisher(Protocol):
    """Contract for the external ordering service.

    Returns an opaque, strictly increasing sequence marker or raises PublishError.
    """
    async def publish(self, topic_id: str | None, record: dict) -> SequenceMarker: ...


class RosterStore(Protocol):
    """Contract for the read-only roster/schedule lookup."""
    def find_session(self, class_id: str, session_id: str) -> SessionInfo | None: ...
    def get_roster(self, class_id: str) -> list[RosterEntry] | None: ...
    def get_schedule(self, class_id: str) -> dict | None: ...
    def list_classes(self) -> list[dict]: ...
