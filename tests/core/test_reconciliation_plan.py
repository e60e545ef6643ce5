"""Reconciliation Planning — pure roster/snapshot diff."""

from eduair.core.crypto import compute_pseudonym, derive_session_salt
from eduair.core.domain_types import AttendanceStatus, RosterEntry
from eduair.core.reconciliation import hash_roster, plan_reconciliation

SALT = derive_session_salt("secret", "math-9a", "2025-10-01T09:00:00+01:00")
ROSTER = [
    RosterEntry("s-001", "04AABBCCDD"),
    RosterEntry("s-002", "0499887766"),
    RosterEntry("s-003", "045566AABB"),
]


def _p(token: str) -> str:
    return compute_pseudonym(token, SALT)


def test_scenario_one_present_two_absent():
    plan = plan_reconciliation(ROSTER, SALT, {_p("04AABBCCDD"): AttendanceStatus.ON_TIME})
    assert plan.roster_size == 3
    assert plan.attended == 1
    assert [c.student_id for c in plan.candidates] == ["s-002", "s-003"]
    assert _p("04AABBCCDD") not in {c.pseudonym for c in plan.candidates}


def test_empty_snapshot_marks_everyone():
    plan = plan_reconciliation(ROSTER, SALT, {})
    assert len(plan.candidates) == 3
    assert plan.attended == 0
    assert plan.snapshot_size == 0


def test_full_snapshot_marks_no_one():
    snapshot = {_p(e.raw_identity_token): AttendanceStatus.LATE for e in ROSTER}
    plan = plan_reconciliation(ROSTER, SALT, snapshot)
    assert plan.candidates == []
    assert plan.attended == 3


def test_previously_reconciled_absentees_are_not_attended():
    snapshot = {
        _p("04AABBCCDD"): AttendanceStatus.ON_TIME,
        _p("0499887766"): AttendanceStatus.ABSENT,
        _p("045566AABB"): AttendanceStatus.ABSENT,
    }
    plan = plan_reconciliation(ROSTER, SALT, snapshot)
    assert plan.candidates == []
    assert plan.attended == 1


def test_non_roster_pseudonyms_do_not_count_as_attended():
    snapshot = {"0x" + "a" * 64: AttendanceStatus.ON_TIME}
    plan = plan_reconciliation(ROSTER, SALT, snapshot)
    assert plan.attended == 0
    assert plan.snapshot_size == 1
    assert len(plan.candidates) == 3


def test_duplicate_roster_tokens_collapse():
    roster = ROSTER + [RosterEntry("s-001-dup", "04AABBCCDD")]
    hashed = hash_roster(roster, SALT)
    assert len(hashed) == 3
    assert hashed[_p("04AABBCCDD")] == "s-001"


def test_wrong_salt_marks_everyone_absent():
    other_salt = derive_session_salt("secret", "math-9a", "2025-10-02T09:00:00+01:00")
    snapshot = {_p(e.raw_identity_token): AttendanceStatus.ON_TIME for e in ROSTER}
    plan = plan_reconciliation(ROSTER, other_salt, snapshot)
    assert len(plan.candidates) == 3


def test_pending_live_taps_are_in_flight():
    plan = plan_reconciliation(ROSTER, SALT, {}, pending={_p("04AABBCCDD")})
    assert plan.in_flight == [_p("04AABBCCDD")]
    assert plan.attended == 0
    assert [c.student_id for c in plan.candidates] == ["s-002", "s-003"]


def test_pending_live_tap_over_absent_mark_is_in_flight():
    snapshot = {_p("04AABBCCDD"): AttendanceStatus.ABSENT}
    plan = plan_reconciliation(ROSTER, SALT, snapshot, pending={_p("04AABBCCDD")})
    assert plan.in_flight == [_p("04AABBCCDD")]
    assert plan.attended == 0
