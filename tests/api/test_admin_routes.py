"""Admin API — closeSession response shape, partial failures, not-found."""

from conftest import CLASS_ID, SESSION_ID, SESSION_START_MS


async def _tap(client, pseudonym):
    await client.post("/ingest/attendance", json={
        "classId": CLASS_ID, "sessionId": SESSION_ID,
        "pseudonym": pseudonym, "eventTimestamp": SESSION_START_MS,
    })


async def test_close_session(client, pseudonym_for):
    await _tap(client, pseudonym_for("04AABBCCDD"))

    response = await client.post(
        "/admin/closeSession", json={"classId": CLASS_ID, "sessionId": SESSION_ID},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["totalRoster"] == 3
    assert body["attended"] == 1
    assert body["markedAbsent"] == 2
    assert body["failed"] == 0
    assert [a["studentId"] for a in body["absentees"]] == ["s-002", "s-003"]
    assert all(a["sequenceMarker"] for a in body["absentees"])
    assert "04AABBCCDD" not in response.text


async def test_second_close_marks_nobody(client):
    payload = {"classId": CLASS_ID, "sessionId": SESSION_ID}
    await client.post("/admin/closeSession", json=payload)
    response = await client.post("/admin/closeSession", json=payload)
    assert response.json()["markedAbsent"] == 0


async def test_partial_failure_reported(client, publisher, pseudonym_for):
    publisher.fail_for = {pseudonym_for("0499887766")}
    response = await client.post(
        "/admin/closeSession", json={"classId": CLASS_ID, "sessionId": SESSION_ID},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "partial"
    assert body["failed"] == 1
    assert body["failures"][0]["studentId"] == "s-002"
    assert body["failures"][0]["kind"] == "PublishFailed"
    assert body["failures"][0]["sequenceMarker"] is None


async def test_close_unknown_session_is_404(client, publisher):
    response = await client.post(
        "/admin/closeSession", json={"classId": CLASS_ID, "sessionId": "nope"},
    )
    assert response.status_code == 404
    assert publisher.published == []


async def test_close_requires_fields(client):
    response = await client.post("/admin/closeSession", json={"classId": CLASS_ID})
    assert response.status_code == 400
