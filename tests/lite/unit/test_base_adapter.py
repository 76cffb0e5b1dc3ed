"""Unit tests for kiosk_lite.fetchers.base (Result/Status and BaseHTTPAdapter)."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import pytest
from pydantic import ValidationError

from kiosk_lite.core.http_client import get_client_health
from kiosk_lite.fetchers.base import (
    BaseHTTPAdapter,
    FetchError,
    FetchHTTPStatusError,
    FetchNetworkError,
    FetchTimeoutError,
    Result,
    SourceAdapter,
    Status,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]

NOW = datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)


class SlowAdapter(BaseHTTPAdapter):
    def __init__(self, delay: float, **kwargs: Any) -> None:
        super().__init__("slow", **kwargs)
        self.delay = delay
        self.started = asyncio.Event()

    async def _fetch(self) -> str:
        self.started.set()
        await asyncio.sleep(self.delay)
        return "done"


class GetAdapter(BaseHTTPAdapter):
    async def _fetch(self) -> int:
        client = await self._get_client()
        response = await client.get("https://upstream.test/")
        self._ensure_ok(response)
        return response.status_code


class TestStatus:
    def test_from_outcome_when_no_error_then_healthy(self) -> None:
        status = Status.from_outcome(NOW, None)

        assert status.is_healthy is True
        assert status.error_message == ""
        assert status.last_fetch_time == NOW

    def test_from_outcome_when_error_then_message_recorded(self) -> None:
        status = Status.from_outcome(NOW, FetchNetworkError("connection refused"))

        assert status.is_healthy is False
        assert status.error_message == "connection refused"

    def test_from_outcome_when_error_has_no_message_then_class_name(self) -> None:
        assert Status.from_outcome(NOW, FetchError()).error_message == "FetchError"

    def test_result_when_frozen_then_assignment_rejected(self) -> None:
        result = Result(source_name="a", payload={"x": 1}, status=Status.from_outcome(NOW, None))

        with pytest.raises(ValidationError):
            result.source_name = "b"  # type: ignore[misc]


class TestBaseHTTPAdapter:
    async def test_fetch_when_slower_than_timeout_then_timeout_error(self) -> None:
        adapter = SlowAdapter(delay=5.0, timeout=0.01)

        with pytest.raises(FetchTimeoutError):
            await adapter.fetch()

    async def test_fetch_when_fast_then_payload_returned(self) -> None:
        assert await SlowAdapter(delay=0.0, timeout=1.0).fetch() == "done"

    async def test_fetch_when_task_cancelled_then_cancelled_error_propagates(self) -> None:
        adapter = SlowAdapter(delay=5.0, timeout=10.0)
        task = asyncio.create_task(adapter.fetch())
        await adapter.started.wait()

        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    async def test_fetch_when_connect_error_then_network_error(
        self, mock_client: Callable[..., httpx.AsyncClient]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        adapter = GetAdapter("g", client=mock_client(handler))

        with pytest.raises(FetchNetworkError):
            await adapter.fetch()
        assert get_client_health() is None

    async def test_fetch_when_read_timeout_then_timeout_error(
        self, mock_client: Callable[..., httpx.AsyncClient]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        adapter = GetAdapter("g", client=mock_client(handler))

        with pytest.raises(FetchTimeoutError):
            await adapter.fetch()

    async def test_fetch_when_non_200_then_status_error_with_code(
        self, mock_client: Callable[..., httpx.AsyncClient]
    ) -> None:
        adapter = GetAdapter("g", client=mock_client(lambda r: httpx.Response(418)))

        with pytest.raises(FetchHTTPStatusError) as exc_info:
            await adapter.fetch()

        assert exc_info.value.status_code == 418
        assert str(exc_info.value) == "unexpected status code: 418"

    def test_adapter_when_checked_then_satisfies_protocol(self) -> None:
        adapter = GetAdapter("g")

        assert isinstance(adapter, SourceAdapter)
        assert adapter.name == "g"
        assert adapter.timeout == 10.0
