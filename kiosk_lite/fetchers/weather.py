"""OpenWeatherMap current-conditions adapter."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .base import BaseHTTPAdapter, FetchParseError
from .models import WeatherData

logger = logging.getLogger(__name__)

DEFAULT_WEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
SETUP_REQUIRED_DESCRIPTION = "Setup Required"


def setup_required() -> WeatherData:
    """Sentinel payload shown while no usable API key is configured."""
    return WeatherData(description=SETUP_REQUIRED_DESCRIPTION, setup_required=True)


class WeatherAdapter(BaseHTTPAdapter):
    """Fetch current conditions for one city.

    A missing API key, or one the upstream rejects with 401, is not an
    error: the adapter returns the :func:`setup_required` sentinel so the
    dashboard can prompt for configuration.
    """

    def __init__(
        self,
        api_key: str,
        city: str,
        units: str = "metric",
        base_url: str = "",
        *,
        name: str = "weather",
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(name, client=client, timeout=timeout)
        self.api_key = api_key
        self.city = city
        self.units = units
        self.base_url = base_url or DEFAULT_WEATHER_URL

    async def _fetch(self) -> WeatherData:
        if not self.api_key:
            return setup_required()

        client = await self._get_client()
        logger.debug("Fetching weather for %s", self.city)
        response = await client.get(
            self.base_url,
            params={"q": self.city, "appid": self.api_key, "units": self.units},
        )

        if response.status_code == 401:
            # TODO: distinguish a revoked key from a missing one once the UI has a state for it
            logger.warning("Weather API rejected the configured key for %s", self.name)
            return setup_required()
        self._ensure_ok(response)

        try:
            body = response.json()
        except ValueError as e:
            raise FetchParseError(f"failed to decode response: {e}") from e

        return self._parse(body)

    @staticmethod
    def _parse(body: object) -> WeatherData:
        if not isinstance(body, dict):
            raise FetchParseError("failed to decode response: expected a JSON object")

        conditions = body.get("weather")
        if not isinstance(conditions, list) or not conditions:
            raise FetchParseError("no weather data in response")

        first = conditions[0] if isinstance(conditions[0], dict) else {}
        main = body.get("main")
        if not isinstance(main, dict):
            main = {}
        try:
            return WeatherData(
                temp=float(main.get("temp", 0.0)),
                humidity=int(main.get("humidity", 0)),
                description=str(first.get("description", "")),
                icon=str(first.get("icon", "")),
                city=str(body.get("name", "")),
            )
        except (TypeError, ValueError) as e:
            raise FetchParseError(f"failed to decode response: {e}") from e
