"""iCal (ICS) feed adapter and the VEVENT normalization shared with CalDAV."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

import httpx
from icalendar import Calendar

from ..core.timezone_utils import now_utc, to_utc
from .base import BaseHTTPAdapter, FetchParseError
from .models import CalendarData, CalendarEvent

logger = logging.getLogger(__name__)

PAST_GRACE = timedelta(hours=1)
LOOKAHEAD = timedelta(days=7)


def parse_calendar(content: Union[bytes, str]) -> Calendar:
    """Parse an ICS document, mapping parser failures to FetchParseError."""
    try:
        return Calendar.from_ical(content)
    except (ValueError, IndexError, KeyError) as e:
        raise FetchParseError(f"failed to parse calendar: {e}") from e


def _prop_text(component: Any, key: str) -> str:
    value = component.get(key)
    return "" if value is None else str(value)


def _prop_date(component: Any, key: str) -> Optional[Union[datetime, date]]:
    prop = component.get(key)
    value = getattr(prop, "dt", None)
    if isinstance(value, date):
        return value
    return None


def event_from_component(component: Any) -> Optional[CalendarEvent]:
    """Build a CalendarEvent from a VEVENT, or None when it has no usable DTSTART.

    Floating times are taken as UTC. The end falls back to DTSTART+DURATION,
    then to the following day for date-only starts, then to the start itself.
    """
    raw_start = _prop_date(component, "DTSTART")
    if raw_start is None:
        return None

    all_day = not isinstance(raw_start, datetime)
    start = to_utc(raw_start)

    raw_end = _prop_date(component, "DTEND")
    if raw_end is not None:
        end = to_utc(raw_end)
    else:
        duration = getattr(component.get("DURATION"), "dt", None)
        if isinstance(duration, timedelta):
            end = start + duration
        elif all_day:
            end = start + timedelta(days=1)
        else:
            end = start

    return CalendarEvent(
        summary=_prop_text(component, "SUMMARY"),
        start=start,
        end=end,
        location=_prop_text(component, "LOCATION"),
        description=_prop_text(component, "DESCRIPTION"),
        status=_prop_text(component, "STATUS"),
        all_day=all_day,
    )


def events_from_calendar(calendar: Calendar) -> list[CalendarEvent]:
    """Normalize every VEVENT in ``calendar``, skipping ones without a start."""
    events = []
    for component in calendar.walk("VEVENT"):
        event = event_from_component(component)
        if event is None:
            logger.debug("Skipping VEVENT without DTSTART (uid=%s)", component.get("UID"))
            continue
        events.append(event)
    return events


class ICalAdapter(BaseHTTPAdapter):
    """Fetch an ICS feed and keep the events relevant to the coming week.

    Events that ended more than an hour ago, or start more than seven days
    from now, are dropped. The window is relative to the time of the fetch.
    """

    def __init__(
        self,
        name: str,
        url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(name, client=client, timeout=timeout)
        self.url = url

    async def _fetch(self) -> CalendarData:
        client = await self._get_client()
        logger.debug("Fetching ICS %s from %s", self.name, self.url)
        response = await client.get(self.url)
        self._ensure_ok(response)

        calendar = parse_calendar(response.content)
        now = now_utc()
        earliest_end = now - PAST_GRACE
        latest_start = now + LOOKAHEAD

        events = [
            event
            for event in events_from_calendar(calendar)
            if event.end >= earliest_end and event.start <= latest_start
        ]
        logger.debug("ICS %s: %d events in window", self.name, len(events))
        return CalendarData(source=self.name, events=events)
