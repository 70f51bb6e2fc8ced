from __future__ import annotations

import datetime as dt
from typing import Optional, Union
from zoneinfo import ZoneInfo

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _zone(tz: Union[str, dt.tzinfo]) -> dt.tzinfo:
    return ZoneInfo(tz) if isinstance(tz, str) else tz


def local_now(tz: Union[str, dt.tzinfo], now: Optional[dt.datetime] = None) -> dt.datetime:
    """Return ``now`` (default: the current instant) in ``tz``.

    Naive ``now`` values are taken to be UTC.
    """
    instant = now or dt.datetime.now(dt.timezone.utc)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=dt.timezone.utc)
    return instant.astimezone(_zone(tz))


def local_timestamp(tz: Union[str, dt.tzinfo], now: Optional[dt.datetime] = None) -> str:
    """Fixed-width ``YYYY-MM-DD HH:MM:SS`` wall-clock time in ``tz``."""
    return local_now(tz, now).strftime(TIMESTAMP_FORMAT)


def parse_local_datetime(value: str, tz: Union[str, dt.tzinfo]) -> Optional[dt.datetime]:
    """Parse a provider wall-clock string (``2024-01-01 12:00:00`` or ISO) as ``tz`` time."""
    token = (value or "").strip()
    if not token:
        return None
    try:
        parsed = dt.datetime.fromisoformat(token.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=_zone(tz))
    return parsed.astimezone(_zone(tz))
