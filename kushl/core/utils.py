"""
Utility helpers shared across services.
"""

from __future__ import annotations

import calendar
import secrets
import string
import time
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import get_settings

_ID_ALPHABET = string.digits + string.ascii_lowercase
DAY_MS = 24 * 60 * 60 * 1000


def generate_id(length: int = 26) -> str:
    """Random lowercase base-36 identifier, same shape as the legacy client ids."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_from_ms(value: int | float | None) -> str:
    """Render an epoch-millisecond timestamp as ISO 8601 UTC (``...T...000Z``)."""
    moment = datetime.fromtimestamp((value or 0) / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def local_now() -> datetime:
    """Current time in the configured application time zone."""
    tz_name = get_settings().timezone
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = timezone.utc
    return datetime.now(tz)


def add_months(value_ms: int, months: int = 1) -> int:
    """Shift a UTC timestamp by calendar months, clamping to the last day of the month."""
    moment = datetime.fromtimestamp(value_ms / 1000, tz=timezone.utc)
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return round(moment.replace(year=year, month=month, day=day).timestamp() * 1000)
