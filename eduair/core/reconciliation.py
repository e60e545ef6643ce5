"""Reconciliation Planning — pure diff of a roster against a ledger snapshot.

Invariants:
    - Every roster member is re-hashed with the session salt (same salt as live ingestion)
    - A member is an absentee candidate iff its pseudonym is not in the snapshot
    - Candidates keep roster order; duplicate roster tokens collapse to one candidate
    - attended counts roster members recorded present in the pre-reconciliation
      snapshot; pseudonyms reconciled absent by an earlier pass never count
    - A member whose live tap is still being published is neither attended
      nor a candidate; it is reported in_flight
    - No IO, no async, no ledger mutation

Design Decisions:
    - Planning split from emission: the engine in services/ owns locking,
      publishing and ledger commits around this pure step
"""

from dataclasses import dataclass, field
from typing import Collection, Iterable, Mapping

from eduair.core.crypto import compute_pseudonym
from eduair.core.domain_types import (
    AttendanceStatus, Pseudonym, RosterEntry, SessionSalt, StudentId,
)


@dataclass(frozen=True)
class AbsenteeCandidate:
    student_id: StudentId
    pseudonym: Pseudonym


@dataclass
class ReconciliationPlan:
    roster_size: int
    snapshot_size: int
    attended: int
    candidates: list[AbsenteeCandidate] = field(default_factory=list)
    in_flight: list[Pseudonym] = field(default_factory=list)


def hash_roster(
    roster: Iterable[RosterEntry], salt: SessionSalt,
) -> dict[Pseudonym, StudentId]:
    """Map each roster member's session pseudonym to its student id."""
    hashed: dict[Pseudonym, StudentId] = {}
    for entry in roster:
        pseudonym = compute_pseudonym(entry.raw_identity_token, salt)
        hashed.setdefault(pseudonym, entry.student_id)
    return hashed


def plan_reconciliation(
    roster: list[RosterEntry],
    salt: SessionSalt,
    snapshot: Mapping[Pseudonym, AttendanceStatus],
    pending: Collection[Pseudonym] = (),
) -> ReconciliationPlan:
    """Diff roster pseudonyms against a ledger snapshot (pseudonym → status).

    pending holds pseudonyms of live taps claimed but not yet committed.
    """
    hashed = hash_roster(roster, salt)
    candidates = []
    in_flight = []
    attended = 0
    for pseudonym, student_id in hashed.items():
        status = snapshot.get(pseudonym)
        if pseudonym in pending and status in (None, AttendanceStatus.ABSENT):
            in_flight.append(pseudonym)
        elif status is None:
            candidates.append(AbsenteeCandidate(student_id, pseudonym))
        elif status != AttendanceStatus.ABSENT:
            attended += 1
    return ReconciliationPlan(
        roster_size=len(roster),
        snapshot_size=len(snapshot),
        attended=attended,
        candidates=candidates,
        in_flight=in_flight,
    )
