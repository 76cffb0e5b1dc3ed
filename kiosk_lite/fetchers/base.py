"""Source adapter capability, fetch outcome types and the shared HTTP adapter base."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict

from ..core.http_client import get_shared_client, record_client_error, record_client_success

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0


class FetchError(Exception):
    """Base exception for a failed fetch attempt."""


class FetchHTTPStatusError(FetchError):
    """Upstream answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FetchNetworkError(FetchError):
    """Connection, DNS or TLS failure talking to the upstream."""


class FetchTimeoutError(FetchError):
    """Upstream did not answer within the adapter's timeout."""


class FetchParseError(FetchError):
    """Upstream answered but the body could not be decoded."""


@runtime_checkable
class SourceAdapter(Protocol):
    """What the scheduler and the calendar aggregator need from a data source.

    ``fetch`` performs one round trip and returns a normalized payload or
    raises. Cancelling the awaiting task aborts any in-flight request.
    """

    @property
    def name(self) -> str: ...

    async def fetch(self) -> Any: ...


class Status(BaseModel):
    """Metadata of a single fetch attempt."""

    model_config = ConfigDict(frozen=True)

    last_fetch_time: datetime
    is_healthy: bool
    error_message: str = ""

    @classmethod
    def from_outcome(cls, fetched_at: datetime, error: Optional[BaseException]) -> Status:
        if error is None:
            return cls(last_fetch_time=fetched_at, is_healthy=True)
        return cls(
            last_fetch_time=fetched_at,
            is_healthy=False,
            error_message=str(error) or error.__class__.__name__,
        )


class Result(BaseModel):
    """The outcome of one fetch attempt, as published by the scheduler."""

    model_config = ConfigDict(frozen=True)

    source_name: str
    payload: Any = None
    status: Status


class BaseHTTPAdapter:
    """Common plumbing for adapters that talk to an HTTP upstream.

    Subclasses implement ``_fetch()``. ``fetch()`` bounds it with a wall-clock
    timeout, independent of any outside cancellation, and maps httpx failures
    onto the FetchError hierarchy.
    """

    default_timeout = DEFAULT_FETCH_TIMEOUT

    def __init__(
        self,
        name: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._name = name
        self._client = client
        self._use_shared_client = client is None
        self.timeout = timeout if timeout is not None else self.default_timeout

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self._name!r})"

    async def fetch(self) -> Any:
        try:
            payload = await asyncio.wait_for(self._fetch(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(f"no response within {self.timeout:g}s") from e
        except httpx.TimeoutException as e:
            await self._record_error()
            raise FetchTimeoutError(f"request timed out: {e}") from e
        except httpx.TransportError as e:
            await self._record_error()
            raise FetchNetworkError(f"request failed: {e}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"request failed: {e}") from e

        if self._use_shared_client:
            await record_client_success()
        return payload

    async def _fetch(self) -> Any:
        raise NotImplementedError

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client()

    async def _record_error(self) -> None:
        if self._use_shared_client:
            await record_client_error()

    @staticmethod
    def _ensure_ok(response: httpx.Response) -> None:
        if response.status_code != 200:
            raise FetchHTTPStatusError(
                f"unexpected status code: {response.status_code}",
                status_code=response.status_code,
            )
