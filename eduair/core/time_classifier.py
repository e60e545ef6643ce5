"""Time Classifier — maps a tap timestamp to on_time / late.

Invariants:
    - elapsed_minutes = (event_ms - start_ms) / 60000
    - elapsed_minutes <= tolerance → ON_TIME, else LATE (boundary is inclusive)
    - Events before the session start are ON_TIME (one-sided window, not rejected)
    - ABSENT is never produced here (reconciliation only)
"""

from datetime import datetime, timedelta, timezone

from eduair.core.domain_types import AttendanceStatus, EpochMillis

MS_PER_MINUTE = 60_000
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def parse_iso_ms(iso: str) -> EpochMillis:
    """Parse an ISO 8601 timestamp into epoch milliseconds.

    Naive timestamps are taken as UTC. A trailing "Z" is accepted.
    Raises ValueError on malformed input.
    """
    value = iso.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return EpochMillis((parsed - _EPOCH) // _ONE_MS)


def now_ms() -> EpochMillis:
    return EpochMillis((datetime.now(timezone.utc) - _EPOCH) // _ONE_MS)


def elapsed_minutes(event_ms: int, session_start_ms: int) -> float:
    return (event_ms - session_start_ms) / MS_PER_MINUTE


def classify(
    event_ms: int, session_start_ms: int, tolerance_minutes: float,
) -> AttendanceStatus:
    if elapsed_minutes(event_ms, session_start_ms) <= tolerance_minutes:
        return AttendanceStatus.ON_TIME
    return AttendanceStatus.LATE
