"""Database Ledger — same contract as the in-memory ledger, persisted via SQLAlchemy.

Design Decisions:
    - File-backed SQLite under tmp_path: every test gets a fresh database
"""

import asyncio

import pytest
from sqlalchemy import func, select

from eduair.core.domain_types import AttendanceStatus
from eduair.core.repository_protocols import PresenceResult
from eduair.infrastructure.database import DatabaseSessionManager
from eduair.models.presence import PresenceRecord
from eduair.services.sql_ledger import DatabaseLedger

P1 = "0x" + "1" * 64
P2 = "0x" + "2" * 64


@pytest.fixture
async def db_manager(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await manager.create_all()
    yield manager
    await manager.dispose()


@pytest.fixture
def sql_ledger(db_manager):
    return DatabaseLedger(db_manager)


async def _row_count(db_manager) -> int:
    async with db_manager.session() as db:
        result = await db.execute(select(func.count()).select_from(PresenceRecord))
        return result.scalar_one()


async def test_record_presence_is_idempotent(sql_ledger, db_manager):
    assert (await sql_ledger.record_presence("c", "s", P1)).already_present is False
    assert (await sql_ledger.record_presence("c", "s", P1)).already_present is True
    assert await _row_count(db_manager) == 1


async def test_statuses_round_trip(sql_ledger):
    await sql_ledger.record_presence("c", "s", P1, AttendanceStatus.LATE)
    assert await sql_ledger.statuses("c", "s") == {P1: AttendanceStatus.LATE}


async def test_unknown_session_is_empty(sql_ledger):
    assert await sql_ledger.snapshot("c", "missing") == set()


async def test_presence_survives_a_new_ledger_instance(sql_ledger, db_manager):
    await sql_ledger.record_presence("c", "s", P1)
    reopened = DatabaseLedger(db_manager)
    assert await reopened.snapshot("c", "s") == {P1}


async def test_concurrent_same_pseudonym_single_row(sql_ledger, db_manager):
    results = await asyncio.gather(*[
        sql_ledger.record_presence("c", "s", P1) for _ in range(10)
    ])
    assert sum(not r.already_present for r in results) == 1
    assert await _row_count(db_manager) == 1


async def test_commit_absentee_and_release(sql_ledger):
    async with sql_ledger.exclusive("c", "s") as view:
        assert view.reserve([P1, P2]) == [P1, P2]
    assert await sql_ledger.commit_absentee("c", "s", P1) is True
    await sql_ledger.release_reservation("c", "s", P2)
    assert await sql_ledger.statuses("c", "s") == {P1: AttendanceStatus.ABSENT}


async def test_claimed_presence_persisted_on_commit(sql_ledger, db_manager):
    claim = await sql_ledger.begin_presence("c", "s", P1)
    assert claim == PresenceResult(already_present=False)
    assert await _row_count(db_manager) == 0

    await sql_ledger.commit_presence("c", "s", P1, AttendanceStatus.LATE)
    assert await sql_ledger.statuses("c", "s") == {P1: AttendanceStatus.LATE}
    assert (await sql_ledger.begin_presence("c", "s", P1)).already_present is True


async def test_live_tap_replaces_persisted_absent_mark(sql_ledger, db_manager):
    async with sql_ledger.exclusive("c", "s") as view:
        view.reserve([P1])
    await sql_ledger.commit_absentee("c", "s", P1)

    assert await sql_ledger.begin_presence("c", "s", P1) == PresenceResult(already_present=False)
    await sql_ledger.commit_presence("c", "s", P1, AttendanceStatus.ON_TIME)

    assert await sql_ledger.statuses("c", "s") == {P1: AttendanceStatus.ON_TIME}
    assert await _row_count(db_manager) == 1
