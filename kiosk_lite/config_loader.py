"""kiosk_lite.config_loader

YAML configuration for kiosk_lite.

- ``$VAR`` / ``${VAR}`` references are expanded from the environment before
  parsing, so secrets can stay out of the file. Unset variables expand to "".
- The parsed mapping is validated into pydantic models; any problem is
  reported as :class:`ConfigError`.
- Intervals use duration strings such as ``"90s"``, ``"15m"`` or ``"1h30m"``.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

VALID_REGIONS = frozenset({"top-left", "top-right", "center", "bottom-left", "bottom-right"})
MIN_WEATHER_INTERVAL = 10 * 60.0
MIN_INTERVAL = 60.0

_ENV_REF_RE = re.compile(r"\$\{([^}]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


class ConfigError(Exception):
    """The configuration file is unreadable or invalid."""


def parse_duration(text: str) -> float:
    """Parse a duration like ``"1h30m"`` or ``"2.5s"`` into seconds.

    Raises:
        ValueError: If ``text`` is empty or not a sequence of number+unit pairs.
    """
    s = text.strip()
    if s in ("0", "+0", "-0"):
        return 0.0

    sign = 1.0
    if s[:1] in ("+", "-"):
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]
    if not s:
        raise ValueError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(s):
        match = _DURATION_PART_RE.match(s, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    return sign * total


def expand_env(text: str) -> str:
    """Replace ``$VAR`` and ``${VAR}`` with environment values ("" when unset)."""

    def _lookup(match: re.Match[str]) -> str:
        name = match.group(1) if match.group(1) is not None else match.group(2)
        return os.environ.get(name, "")

    return _ENV_REF_RE.sub(_lookup, text)


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # "key:" with nothing after it (or an unset env var) means "use the default"
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class ServerConfig(_ConfigModel):
    host: str = "0.0.0.0"  # nosec: B104 - kiosk is reached from the display device on the LAN
    port: int = 8080
    update_interval: str = ""

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if value <= 0 or value > 65535:
            raise ValueError(f"invalid server port: {value}")
        return value

    @field_validator("update_interval")
    @classmethod
    def _check_update_interval(cls, value: str) -> str:
        if value:
            parse_duration(value)
        return value


class WeatherConfig(_ConfigModel):
    api_key: str = ""
    city: str = ""
    units: str = "metric"
    base_url: str = ""


class RSSConfig(_ConfigModel):
    url: str = ""


class CalendarSourceConfig(_ConfigModel):
    type: str = "ical"
    url: str = ""
    name: str = ""
    username: str = ""
    password: str = ""
    color: str = ""


class Section(_ConfigModel):
    """One dashboard region and the data source that feeds it."""

    id: str
    region: str = ""
    interval: str = ""
    type: str = ""
    style: str = ""
    weather: Optional[WeatherConfig] = None
    rss: Optional[RSSConfig] = None
    calendars: list[CalendarSourceConfig] = Field(default_factory=list)

    @field_validator("region")
    @classmethod
    def _check_region(cls, value: str) -> str:
        if value and value not in VALID_REGIONS:
            raise ValueError(f"invalid region {value!r}")
        return value

    @model_validator(mode="after")
    def _check_interval(self) -> Section:
        if not self.interval:
            return self
        try:
            seconds = parse_duration(self.interval)
        except ValueError as e:
            raise ValueError(f"invalid interval {self.interval!r} for section {self.id!r}") from e

        if self.type == "weather":
            if seconds < MIN_WEATHER_INTERVAL:
                raise ValueError(
                    f"interval {self.interval!r} for weather section {self.id!r} "
                    "is too short (minimum 10m)"
                )
        elif seconds < MIN_INTERVAL:
            raise ValueError(
                f"interval {self.interval!r} for section {self.id!r} is too short (minimum 1m)"
            )
        return self

    @property
    def interval_seconds(self) -> Optional[float]:
        """Configured interval in seconds, or None to use the type's default."""
        return parse_duration(self.interval) if self.interval else None


class KioskConfig(_ConfigModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    sections: list[Section] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> KioskConfig:
        seen: set[str] = set()
        for section in self.sections:
            if section.id in seen:
                raise ValueError(f"duplicate section id {section.id!r}")
            seen.add(section.id)
        return self

    def section(self, section_id: str) -> Optional[Section]:
        return next((s for s in self.sections if s.id == section_id), None)


def config_from_dict(data: Optional[dict[str, Any]]) -> KioskConfig:
    """Validate a plain mapping (e.g. parsed YAML) into a KioskConfig."""
    try:
        return KioskConfig.model_validate(data or {})
    except ValidationError as e:
        raise ConfigError(str(e)) from e


def load_config(path: Union[str, Path, None] = None) -> KioskConfig:
    """Load configuration from a YAML file and return a KioskConfig.

    Args:
        path: Path to the config file; defaults to ``./config.yaml``.

    Returns:
        Validated configuration. A missing file yields the defaults (no
        sections, port 8080).

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, is not a
            mapping at top level, or fails validation.
    """
    import yaml  # noqa: PLC0415

    p = Path(path) if path else Path.cwd() / "config.yaml"
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return KioskConfig()

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read {p}: {e}") from e

    try:
        raw = yaml.safe_load(expand_env(text))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {p}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {p} must contain a mapping at top level")

    cfg = config_from_dict(raw)
    logger.info("Loaded configuration from %s (%d sections)", p, len(cfg.sections))
    return cfg
