"""Merge several calendar sources into one dashboard section."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .base import SourceAdapter
from .models import CalendarData, CalendarEvent

logger = logging.getLogger(__name__)


class CalendarAggregator:
    """A SourceAdapter whose payload is the union of its children's events.

    Children are fetched one after another. Failed children are skipped; the
    aggregate only fails when every child failed, and then with the first
    child's error. Events are ordered by start time, ties keeping child order.
    """

    def __init__(self, name: str, sources: Sequence[SourceAdapter]) -> None:
        self._name = name
        self.sources = list(sources)

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"CalendarAggregator(name={self._name!r}, sources={len(self.sources)})"

    async def fetch(self) -> CalendarData:
        events: list[CalendarEvent] = []
        errors: list[Exception] = []

        for source in self.sources:
            try:
                data = await source.fetch()
            except Exception as e:
                logger.warning("Calendar source %s failed in %s: %s", source.name, self._name, e)
                errors.append(e)
                continue

            if isinstance(data, CalendarData):
                events.extend(data.events)
            else:
                logger.debug(
                    "Ignoring non-calendar payload %s from %s",
                    type(data).__name__,
                    source.name,
                )

        if errors and len(errors) == len(self.sources):
            raise errors[0]

        events.sort(key=lambda event: event.start)
        return CalendarData(source=self._name, events=events)
