"""Fetch scheduler: one periodic loop per registered source, one shared stream."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..core.timezone_utils import now_utc
from .backoff import Backoff
from .base import Result, SourceAdapter, Status

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 20
DEFAULT_INITIAL_BACKOFF = 1.0
DEFAULT_MAX_BACKOFF = 30.0

SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], datetime]


@dataclass(frozen=True)
class FetcherRegistration:
    adapter: SourceAdapter
    interval: float
    initial_backoff: float
    max_backoff: float


class ResultStream:
    """Receive-only view of the manager's bounded results queue.

    Consumers can take results but never publish into the scheduler's stream.
    """

    def __init__(self, queue: asyncio.Queue[Result]) -> None:
        self._queue = queue

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    async def get(self) -> Result:
        return await self._queue.get()

    def get_nowait(self) -> Result:
        return self._queue.get_nowait()

    def empty(self) -> bool:
        return self._queue.empty()

    def qsize(self) -> int:
        return self._queue.qsize()


class FetchManager:
    """Runs every registered adapter on its own schedule.

    Each registration gets an independent loop: fetch immediately, publish one
    :class:`Result` per attempt to the shared bounded queue, then wait
    ``interval`` after a success or the next backoff delay after a failure.
    A full queue blocks the publishing loop until the consumer catches up.

    Args:
        buffer_size: Capacity of the updates queue. Registrations are capped
            at this number so every source can publish without waiting.
        sleep: Awaitable used between attempts (``asyncio.sleep`` by default).
        clock: Source of ``Status.last_fetch_time`` (``now_utc`` by default).
    """

    def __init__(
        self,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        *,
        sleep: Optional[SleepFunc] = None,
        clock: Optional[ClockFunc] = None,
    ) -> None:
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be at least 1, got {buffer_size}")
        self.buffer_size = buffer_size
        self._updates: asyncio.Queue[Result] = asyncio.Queue(maxsize=buffer_size)
        self._stream = ResultStream(self._updates)
        self._registrations: list[FetcherRegistration] = []
        self._sleep: SleepFunc = sleep or asyncio.sleep
        self._clock: ClockFunc = clock or now_utc
        self._started = False

    @property
    def registrations(self) -> tuple[FetcherRegistration, ...]:
        return tuple(self._registrations)

    def register(
        self,
        adapter: SourceAdapter,
        interval: float,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
    ) -> FetcherRegistration:
        """Add a source to the schedule. Must be called before :meth:`start`.

        Raises:
            RuntimeError: If the manager has already been started.
            TypeError: If ``adapter`` lacks ``name``/``fetch``.
            ValueError: On a non-positive interval, inconsistent backoff
                bounds, a duplicate source name, or when the queue would no
                longer have room for one result per source.
        """
        if self._started:
            raise RuntimeError("cannot register adapters after start()")
        if not isinstance(adapter, SourceAdapter):
            raise TypeError(f"{adapter!r} does not provide name and fetch()")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        if initial_backoff <= 0 or initial_backoff > max_backoff:
            raise ValueError(
                f"backoff bounds must satisfy 0 < initial <= max, "
                f"got {initial_backoff!r}..{max_backoff!r}"
            )
        if any(reg.adapter.name == adapter.name for reg in self._registrations):
            raise ValueError(f"a source named {adapter.name!r} is already registered")
        if len(self._registrations) >= self.buffer_size:
            raise ValueError(
                f"cannot register more than {self.buffer_size} sources with this buffer size"
            )

        registration = FetcherRegistration(adapter, interval, initial_backoff, max_backoff)
        self._registrations.append(registration)
        logger.debug(
            "Registered %s every %.0fs (backoff %.0fs..%.0fs)",
            adapter.name,
            interval,
            initial_backoff,
            max_backoff,
        )
        return registration

    def updates(self) -> ResultStream:
        """Receive-only stream of published results; usable before or after start."""
        return self._stream

    async def start(self, stop_event: asyncio.Event) -> None:
        """Run every registered loop until ``stop_event`` is set.

        On return all loops have been cancelled and awaited; an in-flight
        fetch is aborted rather than allowed to finish.
        """
        if self._started:
            raise RuntimeError("FetchManager.start() may only be called once")
        self._started = True

        tasks = [
            asyncio.create_task(self._run(reg), name=f"fetch:{reg.adapter.name}")
            for reg in self._registrations
        ]
        logger.info("Fetch manager started with %d sources", len(tasks))

        try:
            await stop_event.wait()
        finally:
            for task in tasks:
                task.cancel()
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
            for task, outcome in zip(tasks, outcomes):
                if isinstance(outcome, Exception):
                    logger.error("Fetch loop %s crashed: %s", task.get_name(), outcome)
            logger.info("Fetch manager stopped")

    async def _run(self, registration: FetcherRegistration) -> None:
        adapter = registration.adapter
        backoff = Backoff(registration.initial_backoff, registration.max_backoff)

        while True:
            error: Optional[Exception] = None
            payload = None
            try:
                payload = await adapter.fetch()
            except Exception as e:
                error = e

            result = Result(
                source_name=adapter.name,
                payload=payload,
                status=Status.from_outcome(self._clock(), error),
            )
            await self._updates.put(result)

            if error is None:
                backoff.reset()
                delay = registration.interval
            else:
                delay = backoff.next()
                logger.warning(
                    "Fetch %s failed: %s (retrying in %.0fs)", adapter.name, error, delay
                )

            await self._sleep(delay)
