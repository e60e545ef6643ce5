"""Root conftest — shared test configuration and fakes.

Invariants:
    - Environment defaults are set before eduair.main is imported anywhere
    - Every test gets a fresh InMemoryLedger and FakePublisher
    - get_container is overridden so routes use the test collaborators
"""

import os

os.environ.setdefault("SALT_SECRET", "test-salt-secret")
os.environ.setdefault("TOPIC_ID_ATTENDANCE", "0.0.1001")
os.environ.setdefault("TOPIC_ID_TELEMETRY", "0.0.1002")
os.environ.setdefault("LEDGER_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from httpx import ASGITransport, AsyncClient

from eduair.config import Settings
from eduair.core.crypto import compute_pseudonym, derive_session_salt
from eduair.core.errors import PublishError
from eduair.core.topics import TopicRouting
from eduair.infrastructure.roster_store import JsonRosterStore
from eduair.services.attendance_service import AttendanceService
from eduair.services.ledger import InMemoryLedger

SECRET = "test-salt-secret"
CLASS_ID = "math-9a"
SESSION_ID = "2025-10-01-0900"
SESSION_START = "2025-10-01T09:00:00+01:00"
SESSION_START_MS = 1759305600000  # 2025-10-01T08:00:00Z

ROSTER = {
    CLASS_ID: {
        "students": [
            {"studentId": "s-001", "cardUidHex": "04AABBCCDD"},
            {"studentId": "s-002", "cardUidHex": "0499887766"},
            {"studentId": "s-003", "cardUidHex": "045566AABB"},
        ],
    },
}
SCHEDULE = {
    CLASS_ID: {
        "className": "Mathematics 9A",
        "sessions": [
            {"id": SESSION_ID, "startIso": SESSION_START},
            {"id": "2025-10-02-0900", "startIso": "2025-10-02T09:00:00+01:00"},
        ],
    },
    "art-7c": {
        "sessions": [{"id": "2025-10-01-1300", "startIso": "2025-10-01T13:00:00+01:00"}],
    },
}


class FakePublisher:
    """Ordering-service double: sequential markers, configurable failures."""

    def __init__(self):
        self.published: list[tuple[str | None, dict, str]] = []
        self.fail_for: set[str] = set()
        self.fail_all = False
        self._seq = 0

    async def publish(self, topic_id, record):
        if self.fail_all or record.get("pseudonym") in self.fail_for:
            raise PublishError("ordering service unavailable", "connection_error")
        self._seq += 1
        marker = f"1759305600.{self._seq:09d}"
        self.published.append((topic_id, dict(record), marker))
        return marker

    def records(self, status: str | None = None) -> list[dict]:
        return [
            r for _, r, _ in self.published
            if status is None or r.get("status") == status
        ]


@pytest.fixture
def pseudonym_for():
    """Pseudonym of a raw card UID for the default test session."""
    def _hash(token: str, start: str = SESSION_START, class_id: str = CLASS_ID) -> str:
        return compute_pseudonym(token, derive_session_salt(SECRET, class_id, start))
    return _hash


@pytest.fixture
def roster_store():
    return JsonRosterStore(SCHEDULE, ROSTER)


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def routing():
    return TopicRouting(attendance="0.0.1001", telemetry="0.0.1002")


@pytest.fixture
def test_settings():
    return Settings(
        salt_secret=SECRET,
        topic_id_attendance="0.0.1001",
        topic_id_telemetry="0.0.1002",
        late_tolerance_min=5,
    )


@pytest.fixture
def service(ledger, publisher, roster_store, routing):
    return AttendanceService(
        ledger=ledger,
        publisher=publisher,
        roster_store=roster_store,
        routing=routing,
        salt_secret=SECRET,
        late_tolerance_min=5,
    )


@pytest.fixture
async def client(test_settings, ledger, publisher, roster_store, service):
    """FastAPI test client with the service container overridden."""
    from eduair.api.dependencies import ServiceContainer, get_container
    from eduair.config import collect_configuration_warnings
    from eduair.main import app

    container = ServiceContainer(
        settings=test_settings,
        ledger=ledger,
        publisher=publisher,
        roster_store=roster_store,
        attendance=service,
        warnings=collect_configuration_warnings(test_settings),
    )
    app.dependency_overrides[get_container] = lambda: container

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
