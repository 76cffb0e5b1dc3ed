"""CalDAV calendar adapter (discovery via PROPFIND, events via REPORT)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urljoin

import httpx
import lxml.etree as etree

from ..core.timezone_utils import now_utc
from .base import BaseHTTPAdapter, FetchError, FetchHTTPStatusError, FetchParseError
from .ical import events_from_calendar, parse_calendar
from .models import CalendarData, CalendarEvent

logger = logging.getLogger(__name__)

DAV_NS = "DAV:"
CALDAV_NS = "urn:ietf:params:xml:ns:caldav"
NSMAP = {"D": DAV_NS, "C": CALDAV_NS}

CALDAV_TIMEOUT = 15.0
QUERY_PAST = timedelta(hours=24)
QUERY_FUTURE = timedelta(days=30)

_MULTISTATUS_OK = (200, 207)
_XML_HEADERS = {"Content-Type": "application/xml; charset=utf-8"}

PROPFIND_BODY = """<?xml version="1.0" encoding="utf-8" ?>
<D:propfind xmlns:D="DAV:">
  <D:prop>
    <D:resourcetype/>
    <D:displayname/>
  </D:prop>
</D:propfind>"""

REPORT_TEMPLATE = """<?xml version="1.0" encoding="utf-8" ?>
<C:calendar-query xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:caldav">
  <D:prop>
    <D:getetag/>
    <C:calendar-data/>
  </D:prop>
  <C:filter>
    <C:comp-filter name="VCALENDAR">
      <C:comp-filter name="VEVENT">
        <C:time-range start="{start}" end="{end}"/>
      </C:comp-filter>
    </C:comp-filter>
  </C:filter>
</C:calendar-query>"""


def _caldav_time(value: datetime) -> str:
    return value.strftime("%Y%m%dT%H%M%SZ")


def _parse_multistatus(content: bytes) -> etree._Element:
    try:
        return etree.fromstring(content)
    except etree.XMLSyntaxError as e:
        raise FetchParseError(f"invalid multistatus response: {e}") from e


def find_calendar_hrefs(content: bytes) -> list[str]:
    """Return the hrefs of every calendar collection in a PROPFIND multistatus."""
    root = _parse_multistatus(content)
    hrefs = []
    for response in root.iterfind("D:response", NSMAP):
        href = response.findtext("D:href", default="", namespaces=NSMAP).strip()
        if href and response.find(".//D:resourcetype/C:calendar", NSMAP) is not None:
            hrefs.append(href)
    return hrefs


class CalDAVAdapter(BaseHTTPAdapter):
    """Fetch events from the first calendar found under a CalDAV URL.

    When discovery fails or finds nothing, the configured URL is assumed to
    be the calendar collection itself. Events are limited server-side to the
    window from a day ago to thirty days ahead.
    """

    default_timeout = CALDAV_TIMEOUT

    def __init__(
        self,
        name: str,
        url: str,
        username: str = "",
        password: str = "",
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(name, client=client, timeout=timeout)
        self.url = url
        self._auth = httpx.BasicAuth(username, password)

    async def _fetch(self) -> CalendarData:
        client = await self._get_client()
        calendar_url = await self._discover(client)
        events = await self._query(client, calendar_url)
        logger.debug("CalDAV %s: %d events from %s", self.name, len(events), calendar_url)
        return CalendarData(source=self.name, events=events)

    async def _discover(self, client: httpx.AsyncClient) -> str:
        try:
            response = await client.request(
                "PROPFIND",
                self.url,
                content=PROPFIND_BODY,
                headers={**_XML_HEADERS, "Depth": "1"},
                auth=self._auth,
            )
            if response.status_code not in _MULTISTATUS_OK:
                raise FetchHTTPStatusError(
                    f"unexpected status code: {response.status_code}",
                    status_code=response.status_code,
                )
            hrefs = find_calendar_hrefs(response.content)
        except (httpx.HTTPError, FetchError) as e:
            logger.debug("CalDAV discovery failed for %s, using URL as calendar: %s", self.name, e)
            return self.url

        if not hrefs:
            logger.debug("CalDAV discovery found no calendars for %s", self.name)
            return self.url
        return urljoin(self.url, hrefs[0])

    async def _query(self, client: httpx.AsyncClient, calendar_url: str) -> list[CalendarEvent]:
        now = now_utc()
        body = REPORT_TEMPLATE.format(
            start=_caldav_time(now - QUERY_PAST),
            end=_caldav_time(now + QUERY_FUTURE),
        )
        response = await client.request(
            "REPORT",
            calendar_url,
            content=body,
            headers={**_XML_HEADERS, "Depth": "1"},
            auth=self._auth,
        )
        if response.status_code not in _MULTISTATUS_OK:
            raise FetchHTTPStatusError(
                f"query calendar failed at {calendar_url}: unexpected status code: "
                f"{response.status_code}",
                status_code=response.status_code,
            )

        root = _parse_multistatus(response.content)
        events: list[CalendarEvent] = []
        for data in root.iterfind(".//C:calendar-data", NSMAP):
            if not data.text or not data.text.strip():
                continue
            events.extend(events_from_calendar(parse_calendar(data.text)))
        return events
