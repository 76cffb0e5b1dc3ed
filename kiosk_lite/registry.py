"""Turn configured dashboard sections into FetchManager registrations."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config_loader import CalendarSourceConfig, KioskConfig, Section
from .fetchers.aggregator import CalendarAggregator
from .fetchers.base import SourceAdapter
from .fetchers.caldav import CalDAVAdapter
from .fetchers.ical import ICalAdapter
from .fetchers.manager import DEFAULT_BUFFER_SIZE, FetchManager
from .fetchers.rss import RSSAdapter
from .fetchers.weather import WeatherAdapter

logger = logging.getLogger(__name__)

WEATHER_INTERVAL = 10 * 60.0
DEFAULT_INTERVAL = 15 * 60.0

# (initial, max) seconds
WEATHER_BACKOFF = (5.0, 3600.0)
RSS_BACKOFF = (5.0, 3600.0)
CALENDAR_BACKOFF = (10.0, 3600.0)


def _calendar_source(
    section: Section,
    index: int,
    source: CalendarSourceConfig,
    client: Optional[httpx.AsyncClient],
) -> Optional[SourceAdapter]:
    name = source.name or f"{section.id}-{index}"
    if not source.url:
        logger.warning("Calendar source %s in section %s has no url; skipping", name, section.id)
        return None
    if source.type == "ical":
        return ICalAdapter(name, source.url, client=client)
    if source.type == "caldav":
        return CalDAVAdapter(name, source.url, source.username, source.password, client=client)
    logger.warning(
        "Unknown calendar type %r in section %s; skipping", source.type, section.id
    )
    return None


def build_adapter(
    section: Section, client: Optional[httpx.AsyncClient] = None
) -> Optional[tuple[SourceAdapter, float, tuple[float, float]]]:
    """Adapter, interval and backoff bounds for one section, or None to skip it."""
    if section.type == "weather":
        if section.weather is None:
            logger.warning("Weather section %s has no weather settings; skipping", section.id)
            return None
        cfg = section.weather
        adapter: SourceAdapter = WeatherAdapter(
            cfg.api_key, cfg.city, cfg.units, cfg.base_url, name=section.id, client=client
        )
        return adapter, section.interval_seconds or WEATHER_INTERVAL, WEATHER_BACKOFF

    if section.type == "rss":
        if section.rss is None or not section.rss.url:
            logger.warning("RSS section %s has no feed url; skipping", section.id)
            return None
        adapter = RSSAdapter(section.id, section.rss.url, client=client)
        return adapter, section.interval_seconds or DEFAULT_INTERVAL, RSS_BACKOFF

    if section.type == "calendar":
        children = []
        for index, source in enumerate(section.calendars):
            child = _calendar_source(section, index, source, client)
            if child is not None:
                children.append(child)
        if not children:
            logger.warning("Calendar section %s has no usable sources; skipping", section.id)
            return None
        adapter = CalendarAggregator(section.id, children)
        return adapter, section.interval_seconds or DEFAULT_INTERVAL, CALENDAR_BACKOFF

    logger.debug("Section %s (type %r) has no data source", section.id, section.type)
    return None


def build_manager(
    config: KioskConfig,
    client: Optional[httpx.AsyncClient] = None,
    *,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> FetchManager:
    """Create a FetchManager with one registration per data-backed section.

    Args:
        config: Validated configuration
        client: Optional HTTP client shared by every adapter (tests pass one
            backed by ``httpx.MockTransport``); the pooled client otherwise
        buffer_size: Capacity of the manager's updates queue

    Returns:
        A manager that has not been started yet
    """
    manager = FetchManager(buffer_size=max(buffer_size, len(config.sections)))
    for section in config.sections:
        built = build_adapter(section, client)
        if built is None:
            continue
        adapter, interval, (initial_backoff, max_backoff) = built
        manager.register(adapter, interval, initial_backoff, max_backoff)
        logger.info("Section %s: %s every %.0fs", section.id, type(adapter).__name__, interval)
    return manager
