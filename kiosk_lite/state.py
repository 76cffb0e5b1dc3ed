"""Latest known Result per source, fed by the fetch manager's queue."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional, Union

from .fetchers.base import Result
from .fetchers.manager import ResultStream

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Built on a ``threading.Condition`` so snapshots can also be taken from
    worker threads. Holders must not await while holding it.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class StateCoordinator:
    """Owns the state map: source name -> most recent Result.

    A single consumer loop (:meth:`run`) writes; any number of readers take
    copies with :meth:`snapshot` or :meth:`get`.
    """

    def __init__(self) -> None:
        self._state: dict[str, Result] = {}
        self._lock = ReadWriteLock()

    def apply(self, result: Result) -> None:
        """Replace the stored entry for ``result.source_name``."""
        with self._lock.write_locked():
            self._state[result.source_name] = result

    def snapshot(self) -> dict[str, Result]:
        """Shallow copy of the state map; Results themselves are immutable."""
        with self._lock.read_locked():
            return dict(self._state)

    def get(self, name: str) -> Optional[Result]:
        with self._lock.read_locked():
            return self._state.get(name)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._state)

    async def run(
        self,
        updates: Union[ResultStream, asyncio.Queue[Result]],
        stop_event: asyncio.Event,
    ) -> None:
        """Consume ``updates`` until ``stop_event`` is set."""
        stop_waiter = asyncio.create_task(stop_event.wait())
        getter: Optional[asyncio.Task[Result]] = None
        try:
            while not stop_event.is_set():
                getter = asyncio.create_task(updates.get())
                done, _ = await asyncio.wait(
                    {getter, stop_waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                if getter not in done:
                    break

                result = getter.result()
                self.apply(result)
                logger.debug(
                    "State updated: %s (healthy=%s)",
                    result.source_name,
                    result.status.is_healthy,
                )
        finally:
            stop_waiter.cancel()
            if getter is not None and not getter.done():
                getter.cancel()
        logger.debug("State coordinator stopped")
