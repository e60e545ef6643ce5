"""Roster Store — read-only keyed lookup of class schedules and rosters.

Invariants:
    - Loaded once at startup; never mutated afterwards
    - Raw identity tokens (cardUidHex) are only exposed as RosterEntry objects
      to the reconciliation engine; get_schedule/list_classes never include them
    - Unknown class or session → None (callers raise NotFoundError)

Design Decisions:
    - JSON files keyed by class id: schedule.json → {classId: {sessions: [...]}},
      roster.json → {classId: {students: [{studentId, cardUidHex}]}}
"""

import json
import logging
from pathlib import Path

from eduair.core.domain_types import (
    ClassId, RawIdentityToken, RosterEntry, SessionId, SessionInfo, StudentId,
)

logger = logging.getLogger(__name__)


class JsonRosterStore:
    """Schedule and roster held in memory, loaded from JSON documents."""

    def __init__(self, schedule: dict, roster: dict):
        self._schedule = schedule
        self._roster = roster

    @classmethod
    def from_files(cls, schedule_path: Path, roster_path: Path) -> "JsonRosterStore":
        schedule = json.loads(Path(schedule_path).read_text(encoding="utf-8"))
        roster = json.loads(Path(roster_path).read_text(encoding="utf-8"))
        logger.info(
            f"Loaded schedule for {len(schedule)} classes, roster for {len(roster)} classes",
        )
        return cls(schedule, roster)

    def find_session(self, class_id: str, session_id: str) -> SessionInfo | None:
        class_schedule = self._schedule.get(class_id)
        if not class_schedule:
            return None
        for session in class_schedule.get("sessions", []):
            if session.get("id") == session_id:
                return SessionInfo(
                    class_id=ClassId(class_id),
                    session_id=SessionId(session_id),
                    start_iso=session["startIso"],
                    end_iso=session.get("endIso"),
                )
        return None

    def get_roster(self, class_id: str) -> list[RosterEntry] | None:
        class_roster = self._roster.get(class_id)
        if class_roster is None:
            return None
        return [
            RosterEntry(
                student_id=StudentId(s["studentId"]),
                raw_identity_token=RawIdentityToken(s["cardUidHex"]),
            )
            for s in class_roster.get("students", [])
        ]

    def get_schedule(self, class_id: str) -> dict | None:
        return self._schedule.get(class_id)

    def list_classes(self) -> list[dict]:
        return [
            {
                "classId": class_id,
                "sessionCount": len(schedule.get("sessions", [])),
                "studentCount": len(self._roster.get(class_id, {}).get("students", [])),
            }
            for class_id, schedule in self._schedule.items()
        ]
