"""Source adapters and the fetch scheduler."""

from .aggregator import CalendarAggregator
from .backoff import Backoff
from .base import (
    BaseHTTPAdapter,
    FetchError,
    FetchHTTPStatusError,
    FetchNetworkError,
    FetchParseError,
    FetchTimeoutError,
    Result,
    SourceAdapter,
    Status,
)
from .caldav import CalDAVAdapter
from .ical import ICalAdapter
from .manager import FetcherRegistration, FetchManager, ResultStream
from .models import CalendarData, CalendarEvent, RSSData, RSSItem, WeatherData
from .rss import RSSAdapter
from .weather import WeatherAdapter

__all__ = [
    "Backoff",
    "BaseHTTPAdapter",
    "CalDAVAdapter",
    "CalendarAggregator",
    "CalendarData",
    "CalendarEvent",
    "FetchError",
    "FetchHTTPStatusError",
    "FetchManager",
    "FetchNetworkError",
    "FetchParseError",
    "FetchTimeoutError",
    "FetcherRegistration",
    "ICalAdapter",
    "RSSAdapter",
    "RSSData",
    "RSSItem",
    "Result",
    "ResultStream",
    "SourceAdapter",
    "Status",
    "WeatherAdapter",
    "WeatherData",
]
