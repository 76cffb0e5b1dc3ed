"""Normalized payload models produced by the source adapters."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CalendarEvent(BaseModel):
    """A single normalized calendar event, shared by every calendar adapter."""

    model_config = ConfigDict(frozen=True)

    summary: str = ""
    start: datetime
    end: datetime
    location: str = ""
    description: str = ""
    status: str = ""
    all_day: bool = False


class CalendarData(BaseModel):
    """Events from one calendar source (or an aggregated section)."""

    model_config = ConfigDict(frozen=True)

    source: str
    events: list[CalendarEvent] = Field(default_factory=list)


class WeatherData(BaseModel):
    """Current conditions for the configured city.

    ``setup_required`` marks the sentinel returned when no (valid) API key is
    configured; consumers check it instead of expecting an error.
    """

    model_config = ConfigDict(frozen=True)

    temp: float = 0.0
    humidity: int = 0
    description: str = ""
    icon: str = ""
    city: str = ""
    setup_required: bool = False


class RSSItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    link: str = ""
    pub_date: str = ""
    summary: str = ""


class RSSData(BaseModel):
    model_config = ConfigDict(frozen=True)

    feed_name: str
    items: list[RSSItem] = Field(default_factory=list)
