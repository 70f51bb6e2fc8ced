import datetime as dt
from typing import Any, Dict, Optional, Tuple

from ..core.dates import local_timestamp
from ..core.locations import Coordinates, Location
from ..core.records import WeatherRecord
from .base import NormalizeError, ProviderClient, require, to_float

# WMO weather interpretation codes, Indonesian labels.
WMO_DESCRIPTIONS: Dict[int, str] = {
    0: "Cerah",
    1: "Cerah berawan",
    2: "Berawan sebagian",
    3: "Berawan",
    45: "Kabut",
    48: "Kabut rime",
    51: "Gerimis ringan",
    53: "Gerimis sedang",
    55: "Gerimis lebat",
    56: "Gerimis beku ringan",
    57: "Gerimis beku lebat",
    61: "Hujan ringan",
    63: "Hujan sedang",
    65: "Hujan lebat",
    66: "Hujan beku ringan",
    67: "Hujan beku lebat",
    71: "Salju ringan",
    73: "Salju",
    75: "Salju lebat",
    77: "Butiran salju",
    80: "Hujan rintik",
    81: "Hujan deras",
    82: "Hujan sangat deras",
    85: "Hujan salju ringan",
    86: "Hujan salju lebat",
    95: "Badai guntur",
    96: "Badai guntur (es kecil)",
    99: "Badai guntur (es besar)",
}

DAY_LABELS = {True: "Ya", False: "Tidak"}


def describe_weather_code(code: Optional[int]) -> Optional[str]:
    if code is None:
        return None
    return WMO_DESCRIPTIONS.get(code, f"Kode {code}")


class OpenMeteoClient(ProviderClient):
    """
    Current conditions from the Open-Meteo forecast API.

    Forecast reference: https://open-meteo.com/en/docs
    """

    provider_key = "open_meteo"
    address_type = Coordinates
    default_base_url = "https://api.open-meteo.com/v1/forecast"

    def build_request(self, location: Location) -> Tuple[str, Dict[str, object]]:
        coords = self._address(location)
        params: Dict[str, object] = {
            "latitude": round(coords.latitude, 6),
            "longitude": round(coords.longitude, 6),
            "current_weather": "true",
            "timezone": location.timezone,
        }
        return self.base_url, params

    def normalize(self, raw: Any, location: Location, *, now: Optional[dt.datetime] = None) -> WeatherRecord:
        current = require(raw, "current_weather", "current_weather", self.provider_key)
        temperature = to_float(require(current, "temperature", "current_weather.temperature", self.provider_key))
        if temperature is None:
            raise NormalizeError("current_weather.temperature", self.provider_key)

        code_value = to_float(current.get("weathercode"))
        code = int(code_value) if code_value is not None else None
        extras: Dict[str, Any] = {}
        if code is not None:
            extras["weatherCode"] = code
        is_day = to_float(current.get("is_day"))
        if is_day is not None:
            extras["isDay"] = DAY_LABELS[bool(is_day)]

        coords = location.address
        return WeatherRecord(
            location_id=location.id,
            captured_at=local_timestamp(location.timezone, now),
            temperature_c=temperature,
            wind_speed_kph=to_float(current.get("windspeed")),
            wind_direction_deg=to_float(current.get("winddirection")),
            weather_description=describe_weather_code(code),
            observed_at=current.get("time"),
            location_meta=self.location_meta(
                location,
                latitude=raw.get("latitude", getattr(coords, "latitude", None)),
                longitude=raw.get("longitude", getattr(coords, "longitude", None)),
            ),
            extras=extras,
            raw=raw,
        )
