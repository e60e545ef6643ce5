"""Global error handlers — envelope shape, Retry-After, catch-all."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from eduair.api.error_handlers import register_error_handlers
from eduair.core.errors import ErrorContext, PublishError


class _Body(BaseModel):
    class_id: str


@pytest.fixture
async def bare_client():
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/rate-limited")
    async def rate_limited():
        raise PublishError(
            "Rate limit exceeded after retries", "rate_limit", retry_after_ms=1500,
            context=ErrorContext(topic_id="0.0.1001"),
        )

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    @app.post("/body")
    async def body(payload: _Body):
        return payload

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as c:
        yield c


async def test_publish_error_sets_retry_after(bare_client):
    response = await bare_client.get("/rate-limited")
    assert response.status_code == 502
    assert response.headers["retry-after"] == "2"
    error = response.json()["error"]
    assert error["code"] == "PUBLISH_FAILED"
    assert error["context"]["topic_id"] == "0.0.1001"


async def test_unexpected_error_hides_details(bare_client):
    response = await bare_client.get("/boom")
    assert response.status_code == 500
    assert response.json()["error"]["code"] == "INTERNAL_ERROR"
    assert "secret internals" not in response.text


async def test_validation_details_drop_location_prefix(bare_client):
    response = await bare_client.post("/body", json={})
    assert response.status_code == 400
    details = response.json()["error"]["details"]
    assert details[0]["field"] == "class_id"
    assert details[0]["type"] == "missing"
