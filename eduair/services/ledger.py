"""Attendance Ledger — per-(class, session) pseudonyms already recorded, with their status.

Invariants:
    - State keyed by (class_id, session_id); a missing key reads as an empty set
    - Every mutation of one session runs under that session's asyncio.Lock
      (linearizable); different sessions never share a lock
    - record_presence is idempotent: a second insert reports already_present
      and does not change the ledger
    - Nothing enters the ledger before its record was published: live taps are
      claimed (begin_presence) and absentees reserved (exclusive().reserve)
      first, then committed after the ordering service accepted them
    - While a live tap is claimed, a second tap for the same pseudonym is told
      it is in flight, never that it is a duplicate
    - A live presence always wins over an absent mark, whichever commits first
    - A claim or reservation whose commit failed is kept, so the published
      record is never published again by this process
    - Locks, claims and reservations of a session are dropped as soon as
      nothing holds or waits for the lock and the sets are empty

Design Decisions:
    - Lock registry, claims and reservations live in SessionLockingLedger;
      storage is a small set of hooks (_load/_get/_insert/_set_status) so the
      in-memory and database backends share the concurrency discipline
    - Ledger instance injected through app.state (no module-level singleton)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from eduair.core.domain_types import AttendanceStatus, ClassId, Pseudonym, SessionId
from eduair.core.repository_protocols import PresenceResult

logger = logging.getLogger(__name__)


LedgerKey = tuple[str, str]


def ledger_key(class_id: str, session_id: str) -> LedgerKey:
    return (class_id, session_id)


class _LockedView:
    """Reconciliation view bound to a held session lock."""

    def __init__(self, ledger: "SessionLockingLedger", class_id: str, session_id: str):
        self._ledger = ledger
        self._class_id = class_id
        self._session_id = session_id
        self._key = ledger_key(class_id, session_id)

    async def entries(self) -> dict[Pseudonym, AttendanceStatus]:
        return dict(await self._ledger._load(self._class_id, self._session_id))

    def pending(self) -> set[Pseudonym]:
        """Pseudonyms of live taps still being published."""
        return set(self._ledger._pending.get(self._key, ()))

    def reserve(self, pseudonyms: list[Pseudonym]) -> list[Pseudonym]:
        """Reserve pseudonyms not already reserved by another reconciliation."""
        reserved = self._ledger._reservations.setdefault(self._key, set())
        granted = [p for p in pseudonyms if p not in reserved]
        reserved.update(granted)
        return granted


class SessionLockingLedger:
    """Per-session locking, claim and reservation discipline over a storage backend."""

    def __init__(self):
        self._locks: dict[LedgerKey, asyncio.Lock] = {}
        self._lock_users: dict[LedgerKey, int] = {}
        self._pending: dict[LedgerKey, set[Pseudonym]] = {}
        self._reservations: dict[LedgerKey, set[Pseudonym]] = {}

    @asynccontextmanager
    async def _session_lock(self, key: LedgerKey) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                self._prune(key)

    def _prune(self, key: LedgerKey) -> None:
        del self._lock_users[key]
        del self._locks[key]
        for registry in (self._pending, self._reservations):
            if key in registry and not registry[key]:
                del registry[key]

    # ─── Storage hooks ──────────────────────────────────────────

    async def _load(self, class_id: str, session_id: str) -> dict[Pseudonym, AttendanceStatus]:
        raise NotImplementedError

    async def _get(
        self, class_id: str, session_id: str, pseudonym: Pseudonym,
    ) -> AttendanceStatus | None:
        return (await self._load(class_id, session_id)).get(pseudonym)

    async def _insert(
        self, class_id: str, session_id: str,
        pseudonym: Pseudonym, status: AttendanceStatus,
    ) -> bool:
        """Insert if absent. Returns True if the pseudonym was newly added."""
        raise NotImplementedError

    async def _set_status(
        self, class_id: str, session_id: str,
        pseudonym: Pseudonym, status: AttendanceStatus,
    ) -> None:
        raise NotImplementedError

    # ─── LedgerStore ────────────────────────────────────────────

    async def record_presence(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
        status: AttendanceStatus = AttendanceStatus.ON_TIME,
    ) -> PresenceResult:
        async with self._session_lock(ledger_key(class_id, session_id)):
            added = await self._insert(class_id, session_id, pseudonym, status)
        return PresenceResult(already_present=not added)

    async def begin_presence(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
    ) -> PresenceResult:
        """Claim a live tap before publishing it.

        already_present: recorded earlier, nothing to publish.
        in_flight: another tap for the pseudonym is still being published.
        Otherwise the caller owns the claim and must commit or abandon it.
        """
        key = ledger_key(class_id, session_id)
        async with self._session_lock(key):
            existing = await self._get(class_id, session_id, pseudonym)
            if existing is not None and existing != AttendanceStatus.ABSENT:
                return PresenceResult(already_present=True)
            pending = self._pending.setdefault(key, set())
            if pseudonym in pending:
                return PresenceResult(already_present=False, in_flight=True)
            pending.add(pseudonym)
        return PresenceResult(already_present=False)

    async def commit_presence(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
        status: AttendanceStatus,
    ) -> None:
        """Record a published live tap and release its claim.

        An absent mark committed meanwhile is replaced (late correction).
        """
        key = ledger_key(class_id, session_id)
        async with self._session_lock(key):
            added = await self._insert(class_id, session_id, pseudonym, status)
            if not added and await self._get(
                class_id, session_id, pseudonym,
            ) == AttendanceStatus.ABSENT:
                await self._set_status(class_id, session_id, pseudonym, status)
                logger.info(
                    f"Absent mark for {pseudonym[:10]}… replaced by a live tap",
                    extra={"class_id": class_id, "session_id": session_id},
                )
            self._pending.get(key, set()).discard(pseudonym)

    async def abandon_presence(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
    ) -> None:
        """Release the claim of a live tap whose publication failed."""
        key = ledger_key(class_id, session_id)
        async with self._session_lock(key):
            self._pending.get(key, set()).discard(pseudonym)

    async def snapshot(self, class_id: ClassId, session_id: SessionId) -> set[Pseudonym]:
        async with self._session_lock(ledger_key(class_id, session_id)):
            return set(await self._load(class_id, session_id))

    async def statuses(
        self, class_id: ClassId, session_id: SessionId,
    ) -> dict[Pseudonym, AttendanceStatus]:
        async with self._session_lock(ledger_key(class_id, session_id)):
            return dict(await self._load(class_id, session_id))

    async def size(self, class_id: ClassId, session_id: SessionId) -> int:
        return len(await self.snapshot(class_id, session_id))

    @asynccontextmanager
    async def exclusive(
        self, class_id: ClassId, session_id: SessionId,
    ) -> AsyncIterator[_LockedView]:
        """Hold the session lock for a read-then-decide window."""
        async with self._session_lock(ledger_key(class_id, session_id)):
            yield _LockedView(self, class_id, session_id)

    async def commit_absentee(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
    ) -> bool:
        """Record a published absentee and clear its reservation.

        Returns False when a live tap recorded the pseudonym first.
        """
        key = ledger_key(class_id, session_id)
        async with self._session_lock(key):
            added = await self._insert(
                class_id, session_id, pseudonym, AttendanceStatus.ABSENT,
            )
            self._reservations.get(key, set()).discard(pseudonym)
        if not added:
            logger.info(
                f"Absentee {pseudonym[:10]}… already present (late correction kept)",
                extra={"class_id": class_id, "session_id": session_id},
            )
        return added

    async def release_reservation(
        self, class_id: ClassId, session_id: SessionId, pseudonym: Pseudonym,
    ) -> None:
        key = ledger_key(class_id, session_id)
        async with self._session_lock(key):
            self._reservations.get(key, set()).discard(pseudonym)


class InMemoryLedger(SessionLockingLedger):
    """Process-local ledger. Volatile: lost on restart."""

    def __init__(self):
        super().__init__()
        self._sessions: dict[LedgerKey, dict[Pseudonym, AttendanceStatus]] = {}

    async def _load(self, class_id, session_id) -> dict[Pseudonym, AttendanceStatus]:
        return self._sessions.get(ledger_key(class_id, session_id), {})

    async def _insert(self, class_id, session_id, pseudonym, status) -> bool:
        entries = self._sessions.setdefault(ledger_key(class_id, session_id), {})
        if pseudonym in entries:
            return False
        entries[pseudonym] = status
        return True

    async def _set_status(self, class_id, session_id, pseudonym, status) -> None:
        self._sessions[ledger_key(class_id, session_id)][pseudonym] = status
