"""Resilient Ordering-Service Client — publishes records over HTTP with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, connection): max_retries retries with exponential backoff
    - Timeouts: immediate PublishError(reason="timeout"), never retried here
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to PublishError (core/errors.py); the returned
      sequence marker is treated as opaque and never parsed

Design Decisions:
    - One shared httpx.AsyncClient per app (created in lifespan, closed on shutdown)
    - ±25% jitter on backoff: spreads retries from concurrent session closes
    - Response field "sequenceMarker" preferred, "consensusTimestamp" accepted
"""

import asyncio
import logging
import random

import httpx

from eduair.core.domain_types import SequenceMarker
from eduair.core.errors import ErrorContext, PublishError

logger = logging.getLogger(__name__)

_MARKER_FIELDS = ("sequenceMarker", "consensusTimestamp")


class _TransientStatus(Exception):
    """5xx from the ordering service (retryable)."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class _RateLimited(Exception):
    def __init__(self, response: httpx.Response):
        super().__init__("HTTP 429")
        self.response = response


class OrderingServiceClient:
    """Wraps httpx.AsyncClient with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        max_retries: int = 3,
        base_delay_ms: int = 250,
        max_delay_ms: int = 5_000,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def publish(self, topic_id: str | None, record: dict) -> SequenceMarker:
        """Submit a record and return the ordering service's sequence marker."""
        context = ErrorContext(
            topic_id=topic_id,
            class_id=record.get("classId"),
            session_id=record.get("sessionId"),
        )
        if not topic_id:
            raise PublishError("No topic configured", "no_topic", context=context)

        for attempt in range(self.max_retries + 1):
            try:
                marker = await self._submit(topic_id, record)
                logger.info(
                    "Record published",
                    extra={
                        "topic_id": topic_id, "sequence_marker": marker,
                        "attempt": attempt + 1,
                    },
                )
                return marker

            except _RateLimited as e:
                await self._handle_rate_limit(e, attempt, context)

            except (httpx.TransportError, _TransientStatus) as e:
                if isinstance(e, httpx.TimeoutException):
                    raise PublishError(
                        "Ordering service timeout", "timeout", context=context,
                    )
                await self._handle_transient_error(e, attempt, context)

            except httpx.HTTPStatusError as e:
                raise PublishError(
                    f"HTTP {e.response.status_code}", "client_error", context=context,
                )

        # Unreachable: the handlers raise on the final attempt
        raise PublishError("Retries exhausted", "connection_error", context=context)

    async def _submit(self, topic_id: str, record: dict) -> SequenceMarker:
        response = await self.client.post(
            f"/topics/{topic_id}/messages", json={"message": record},
        )
        if response.status_code == 429:
            raise _RateLimited(response)
        if response.status_code >= 500:
            raise _TransientStatus(response)
        response.raise_for_status()
        return self._extract_marker(response)

    @staticmethod
    def _extract_marker(response: httpx.Response) -> SequenceMarker:
        try:
            body = response.json()
        except ValueError:
            raise PublishError("Response is not JSON", "invalid_response")
        for name in _MARKER_FIELDS:
            value = body.get(name) if isinstance(body, dict) else None
            if value:
                return SequenceMarker(str(value))
        raise PublishError("Response carries no sequence marker", "invalid_response")

    async def _handle_rate_limit(
        self, e: _RateLimited, attempt: int, context: ErrorContext,
    ) -> None:
        """Handle rate limit error with retry or raise."""
        retry_after_ms = self._extract_retry_after(e.response)
        if attempt >= self.max_retries:
            raise PublishError(
                "Rate limit exceeded after retries",
                "rate_limit",
                retry_after_ms=retry_after_ms,
                context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Ordering service rate limit, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: Exception, attempt: int, context: ErrorContext,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise PublishError(
                f"Transient failure after {self.max_retries} retries: {e}",
                "connection_error",
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(f"Transient ordering-service error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    @staticmethod
    def _extract_retry_after(response: httpx.Response) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None

    async def aclose(self) -> None:
        await self.client.aclose()
