from collections.abc import AsyncIterator, Callable, Generator
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest

from kiosk_lite.core.http_client import close_all_clients
from kiosk_lite.core.timezone_utils import TEST_TIME_ENV

# Every time-window fixture below is laid out around this instant.
FROZEN_NOW = datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Ensure the clock override and config env vars don't leak between tests."""
    for name in (TEST_TIME_ENV, "KIOSK_DEBUG", "KIOSK_LOG_LEVEL", "KIOSK_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)
    yield
    monkeypatch.delenv(TEST_TIME_ENV, raising=False)


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close pooled httpx clients after every test so none outlive their event loop."""
    yield
    await close_all_clients()


@pytest.fixture
def frozen_now(monkeypatch: Any) -> datetime:
    """Pin kiosk_lite's clock to FROZEN_NOW via KIOSK_TEST_TIME."""
    monkeypatch.setenv(TEST_TIME_ENV, FROZEN_NOW.isoformat())
    return FROZEN_NOW


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Factory for an AsyncClient whose requests are answered by ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_window() -> str:
    """
    ICS calendar with events placed around FROZEN_NOW (2025-06-02 12:00 UTC).

    Kept by the one-week window:
      - "Just ended"   ended 15 minutes before now
      - "Standup"      tomorrow 09:00-09:30 UTC
      - "Holiday"      all-day on 2025-06-04
      - "Six days out" 2025-06-08 10:00 UTC
    Dropped:
      - "Ended yesterday"  ended more than an hour ago
      - "Eight days out"   starts beyond seven days
      - "No start"         has no DTSTART
    """
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Kiosk Lite Test//EN
CALSCALE:GREGORIAN
BEGIN:VEVENT
UID:ended-yesterday@kiosk.test
DTSTART:20250601T080000Z
DTEND:20250601T090000Z
SUMMARY:Ended yesterday
END:VEVENT
BEGIN:VEVENT
UID:just-ended@kiosk.test
DTSTART:20250602T113000Z
DTEND:20250602T114500Z
SUMMARY:Just ended
END:VEVENT
BEGIN:VEVENT
UID:standup@kiosk.test
DTSTART:20250603T090000Z
DTEND:20250603T093000Z
SUMMARY:Standup
LOCATION:Kitchen
DESCRIPTION:Daily plan
STATUS:CONFIRMED
END:VEVENT
BEGIN:VEVENT
UID:holiday@kiosk.test
DTSTART;VALUE=DATE:20250604
SUMMARY:Holiday
END:VEVENT
BEGIN:VEVENT
UID:six-days@kiosk.test
DTSTART:20250608T100000Z
DURATION:PT1H
SUMMARY:Six days out
END:VEVENT
BEGIN:VEVENT
UID:eight-days@kiosk.test
DTSTART:20250610T100000Z
DTEND:20250610T110000Z
SUMMARY:Eight days out
END:VEVENT
BEGIN:VEVENT
UID:no-start@kiosk.test
SUMMARY:No start
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def ics_factory() -> Callable[..., str]:
    """Factory wrapping raw VEVENT property blocks into a minimal VCALENDAR."""

    def _build(*events: str) -> str:
        body = "".join(f"BEGIN:VEVENT\n{event.strip()}\nEND:VEVENT\n" for event in events)
        return f"BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:-//Kiosk Lite Test//EN\n{body}END:VCALENDAR\n"

    return _build


# ==================== RSS Test Data Fixtures ====================


@pytest.fixture
def rss_factory() -> Callable[..., str]:
    """Factory for an RSS 2.0 document with ``count`` items named "Item 1".."Item N"."""

    def _item(i: int) -> str:
        return (
            "<item>"
            f"<title>Item {i}</title>"
            f"<link>https://example.com/items/{i}</link>"
            f"<pubDate>Mon, 02 Jun 2025 {i % 24:02d}:00:00 GMT</pubDate>"
            f"<description>Item {i}: details for item {i}.</description>"
            "</item>\n"
        )

    def _build(count: int, title: str = "Test Feed") -> str:
        items = "".join(_item(i) for i in range(1, count + 1))
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<rss version="2.0"><channel>\n'
            f"<title>{title}</title>\n"
            "<link>https://example.com/</link>\n"
            "<description>Fixture feed</description>\n"
            f"{items}"
            "</channel></rss>\n"
        )

    return _build
