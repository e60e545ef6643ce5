"""Health probes, schedule and class listings."""

from eduair.api.dependencies import build_container
from eduair.config import Settings
from eduair.infrastructure.local_sequencer import LocalSequencer
from eduair.services.ledger import InMemoryLedger

from conftest import CLASS_ID


async def test_health_reports_topics_and_no_warnings(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["topics"]["attendance"] == "0.0.1001"
    assert body["topics"]["dedicated"] is True
    assert body["ledger"] == "memory"
    assert body["warnings"] == []


async def test_ready_with_memory_ledger(client):
    response = await client.get("/api/v1/health/ready")
    assert response.json() == {"status": "ready", "checks": {"ledger": "memory"}}


async def test_schedule(client):
    response = await client.get(f"/schedule/{CLASS_ID}")
    assert response.status_code == 200
    assert len(response.json()["sessions"]) == 2


async def test_unknown_schedule_is_404(client):
    response = await client.get("/schedule/nope")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Class 'nope' not found"


async def test_classes_listing(client):
    response = await client.get("/classes")
    classes = {c["classId"]: c for c in response.json()["classes"]}
    assert classes[CLASS_ID]["studentCount"] == 3


async def test_build_container_defaults_to_local_sequencer():
    settings = Settings(salt_secret="", ordering_service_url=None, ledger_backend="memory")
    container = await build_container(settings)
    assert isinstance(container.publisher, LocalSequencer)
    assert isinstance(container.ledger, InMemoryLedger)
    assert "salt_secret" in [w.setting for w in container.warnings]
    await container.close()


async def test_build_container_database_ledger(tmp_path):
    settings = Settings(
        ledger_backend="database",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'eduair.db'}",
    )
    container = await build_container(settings)
    assert container.db_manager is not None
    assert await container.db_manager.health_check() is True
    await container.close()
