from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class StationCode:
    """BMKG adm4 code (village level administrative area)."""

    code: str


ProviderAddress = Union[Coordinates, StationCode]


@dataclass(frozen=True)
class Location:
    """A registry entry; ``provider`` names the client that serves it."""

    id: str
    name: str
    address: ProviderAddress
    timezone: str
    provider: str

    def __post_init__(self) -> None:
        if not _ID_PATTERN.match(self.id or ""):
            raise ValueError(f"Location id {self.id!r} is not filesystem safe.")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {self.timezone!r} for location {self.id!r}.") from exc


# Same shape as the ``locations`` mapping in config.json.
DEFAULT_LOCATIONS: Dict[str, Dict[str, object]] = {
    "ambon": {"name": "Ambon", "lat": -3.6596, "lon": 128.1884, "adm4": "81.76.01.1001", "timezone": "Asia/Jayapura"},
    "jakarta": {"name": "Jakarta", "lat": -6.1754, "lon": 106.8272, "adm4": "31.71.06.1001", "timezone": "Asia/Jakarta"},
    "surabaya": {"name": "Surabaya", "lat": -7.2575, "lon": 112.7521, "adm4": "35.76.01.1001", "timezone": "Asia/Jakarta"},
    "medan": {"name": "Medan", "lat": 3.5952, "lon": 98.6722, "adm4": "12.76.01.1001", "timezone": "Asia/Jakarta"},
    "makassar": {"name": "Makassar", "lat": -5.1477, "lon": 119.4327, "adm4": "73.77.01.1001", "timezone": "Asia/Makassar"},
    "bandung": {"name": "Bandung", "lat": -6.9175, "lon": 107.6191, "adm4": "32.73.01.1001", "timezone": "Asia/Jakarta"},
    "yogyakarta": {"name": "Yogyakarta", "lat": -7.7956, "lon": 110.3695, "adm4": "34.75.01.1001", "timezone": "Asia/Jakarta"},
    "padang": {"name": "Padang", "lat": -0.9471, "lon": 100.4172, "adm4": "13.72.01.1001", "timezone": "Asia/Jakarta"},
}
