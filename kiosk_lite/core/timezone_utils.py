"""Clock helpers for kiosk_lite.

All fetch windows and status timestamps are computed from ``now_utc()`` so
tests can pin the clock with the KIOSK_TEST_TIME environment variable.
"""

from __future__ import annotations

import datetime
import logging
import os
from typing import Union

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

TEST_TIME_ENV = "KIOSK_TEST_TIME"


class TimeProvider:
    """Provides current time with test time override support."""

    def now_utc(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden for testing via KIOSK_TEST_TIME.
        Format: ISO 8601 datetime string (e.g., "2025-10-27T08:20:00-07:00").
        Naive values are taken as UTC.

        Returns:
            Current time in UTC with timezone info
        """
        test_time = os.environ.get(TEST_TIME_ENV)
        if test_time:
            try:
                dt = date_parser.isoparse(test_time)
            except ValueError:
                logger.warning("Invalid %s=%r; using real time", TEST_TIME_ENV, test_time)
            else:
                return to_utc(dt)
        return datetime.datetime.now(datetime.timezone.utc)


_time_provider = TimeProvider()


def now_utc() -> datetime.datetime:
    """Get current UTC time (convenience function).

    Returns:
        Current time in UTC
    """
    return _time_provider.now_utc()


def to_utc(value: Union[datetime.datetime, datetime.date]) -> datetime.datetime:
    """Coerce a date or datetime to an aware UTC datetime.

    Date-only values become midnight UTC; floating (naive) datetimes are
    interpreted as UTC.
    """
    if not isinstance(value, datetime.datetime):
        return datetime.datetime(value.year, value.month, value.day, tzinfo=datetime.timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)
