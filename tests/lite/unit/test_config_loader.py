"""Unit tests for kiosk_lite.config_loader."""

from pathlib import Path
from typing import Any

import pytest

from kiosk_lite.config_loader import (
    ConfigError,
    KioskConfig,
    config_from_dict,
    expand_env,
    load_config,
    parse_duration,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]

SAMPLE_YAML = """
server:
  port: 9090
  update_interval: 30s
sections:
  - id: weather
    type: weather
    region: top-right
    interval: 15m
    weather:
      api_key: ${OWM_KEY}
      city: Oslo
  - id: news
    type: rss
    region: bottom-left
    rss:
      url: https://example.com/feed.xml
  - id: agenda
    type: calendar
    calendars:
      - type: caldav
        name: family
        url: https://dav.example.com/
        username: $DAV_USER
        password: ${DAV_PASS}
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestParseDuration:
    @pytest.mark.parametrize(
        ("text", "seconds"),
        [
            ("90s", 90.0),
            ("15m", 900.0),
            ("1h30m", 5400.0),
            ("1.5h", 5400.0),
            ("500ms", 0.5),
            ("0", 0.0),
            ("-2m", -120.0),
        ],
    )
    def test_parse_duration_when_valid_then_seconds(self, text: str, seconds: float) -> None:
        assert parse_duration(text) == pytest.approx(seconds)

    @pytest.mark.parametrize("text", ["", "15", "m", "10 minutes", "1h-5m", "abc"])
    def test_parse_duration_when_invalid_then_value_error(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_duration(text)


class TestExpandEnv:
    def test_expand_env_when_set_and_unset_then_substituted(self, monkeypatch: Any) -> None:
        monkeypatch.setenv("KIOSK_A", "alpha")
        monkeypatch.delenv("KIOSK_MISSING", raising=False)

        assert expand_env("$KIOSK_A/${KIOSK_A}/${KIOSK_MISSING}!") == "alpha/alpha/!"


class TestLoadConfig:
    def test_load_config_when_file_missing_then_defaults(self, tmp_path: Path) -> None:
        cfg = load_config(tmp_path / "nope.yaml")

        assert cfg == KioskConfig()
        assert cfg.server.port == 8080
        assert cfg.server.host == "0.0.0.0"
        assert cfg.sections == []

    def test_load_config_when_valid_then_sections_parsed_with_env(
        self, tmp_path: Path, monkeypatch: Any
    ) -> None:
        monkeypatch.setenv("OWM_KEY", "k-123")
        monkeypatch.setenv("DAV_USER", "kiosk")
        monkeypatch.setenv("DAV_PASS", "pw")

        cfg = load_config(_write(tmp_path, SAMPLE_YAML))

        assert cfg.server.port == 9090
        assert [s.id for s in cfg.sections] == ["weather", "news", "agenda"]
        weather = cfg.section("weather")
        assert weather.weather.api_key == "k-123"
        assert weather.weather.units == "metric"
        assert weather.interval_seconds == 900.0
        assert cfg.section("news").interval_seconds is None
        source = cfg.section("agenda").calendars[0]
        assert (source.type, source.username, source.password) == ("caldav", "kiosk", "pw")

    def test_load_config_when_env_var_unset_then_field_defaults(
        self, tmp_path: Path, monkeypatch: Any
    ) -> None:
        monkeypatch.delenv("OWM_KEY", raising=False)

        cfg = load_config(_write(tmp_path, SAMPLE_YAML))

        assert cfg.section("weather").weather.api_key == ""

    def test_load_config_when_yaml_invalid_then_config_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "sections: [unclosed"))

    def test_load_config_when_top_level_not_mapping_then_config_error(
        self, tmp_path: Path
    ) -> None:
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "- just\n- a list\n"))

    def test_load_config_when_empty_file_then_defaults(self, tmp_path: Path) -> None:
        assert load_config(_write(tmp_path, "")) == KioskConfig()


class TestValidation:
    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_config_when_port_out_of_range_then_error(self, port: int) -> None:
        with pytest.raises(ConfigError):
            config_from_dict({"server": {"port": port}})

    def test_config_when_region_unknown_then_error(self) -> None:
        with pytest.raises(ConfigError):
            config_from_dict({"sections": [{"id": "x", "type": "rss", "region": "middle"}]})

    @pytest.mark.parametrize("region", ["top-left", "top-right", "center", "bottom-left", "bottom-right", ""])
    def test_config_when_region_known_then_accepted(self, region: str) -> None:
        cfg = config_from_dict({"sections": [{"id": "x", "type": "rss", "region": region}]})

        assert cfg.sections[0].region == region

    def test_config_when_weather_interval_below_ten_minutes_then_error(self) -> None:
        with pytest.raises(ConfigError):
            config_from_dict({"sections": [{"id": "w", "type": "weather", "interval": "5m"}]})

    def test_config_when_weather_interval_ten_minutes_then_accepted(self) -> None:
        cfg = config_from_dict({"sections": [{"id": "w", "type": "weather", "interval": "10m"}]})

        assert cfg.sections[0].interval_seconds == 600.0

    def test_config_when_other_interval_below_one_minute_then_error(self) -> None:
        with pytest.raises(ConfigError):
            config_from_dict({"sections": [{"id": "r", "type": "rss", "interval": "30s"}]})

    def test_config_when_other_interval_one_minute_then_accepted(self) -> None:
        cfg = config_from_dict({"sections": [{"id": "r", "type": "rss", "interval": "1m"}]})

        assert cfg.sections[0].interval_seconds == 60.0

    def test_config_when_interval_unparseable_then_error(self) -> None:
        with pytest.raises(ConfigError):
            config_from_dict({"sections": [{"id": "r", "type": "rss", "interval": "soon"}]})

    def test_config_when_duplicate_section_ids_then_error(self) -> None:
        with pytest.raises(ConfigError):
            config_from_dict({"sections": [{"id": "a"}, {"id": "a"}]})

    def test_config_when_unknown_keys_then_ignored(self) -> None:
        cfg = config_from_dict({"slideshow": {"interval": "10s"}, "ui": {"locale": "en"}})

        assert cfg.sections == []

    def test_port_when_assigned_out_of_range_then_rejected(self) -> None:
        cfg = KioskConfig()

        with pytest.raises(ValueError):
            cfg.server.port = 70000
