import datetime as dt
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional, Tuple

import requests

from ..core.dates import local_timestamp
from ..core.locations import Location, StationCode
from ..core.records import WeatherRecord
from .base import NormalizeError, ProviderClient, to_float

# BMKG weather condition codes used by the XML feed.
BMKG_WEATHER_CODES: Dict[int, str] = {
    0: "Cerah",
    1: "Cerah Berawan",
    2: "Cerah Berawan",
    3: "Berawan",
    4: "Berawan Tebal",
    5: "Udara Kabur",
    10: "Asap",
    45: "Kabut",
    60: "Hujan Ringan",
    61: "Hujan Sedang",
    63: "Hujan Lebat",
    80: "Hujan Lokal",
    95: "Hujan Petir",
    97: "Hujan Petir",
    100: "Cerah",
    101: "Cerah Berawan",
    102: "Cerah Berawan",
    103: "Berawan",
    104: "Berawan Tebal",
}

# parameter id -> unit the canonical record is expressed in
PARAMETER_UNITS: Dict[str, Optional[str]] = {
    "cuaca": None,
    "suhu": "C",
    "kecepatan_angin": "KPH",
    "arah_angin": "deg",
    "hu": "%",
}


def _first_timerange(parameter: ET.Element) -> Optional[ET.Element]:
    # Parameters hold a forecast series; only the earliest entry is used.
    timeranges = parameter.findall("timerange")
    if not timeranges:
        return None
    return min(enumerate(timeranges), key=lambda item: (item[1].get("datetime") or "", item[0]))[1]


def _value_in_unit(timerange: ET.Element, unit: Optional[str]) -> Optional[str]:
    values = timerange.findall("value")
    if not values:
        return None
    if unit:
        for value in values:
            if (value.get("unit") or "").lower() == unit.lower():
                return (value.text or "").strip()
    return (values[0].text or "").strip()


def read_forecast(document: str) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Parse the XML feed into ``(values, datetimes)``.

    Both map parameter id to the earliest timerange of that parameter: its
    value in the unit from ``PARAMETER_UNITS`` and its raw ``datetime`` attribute.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise NormalizeError("XML document", "bmkg_xml") from exc

    area = root.find(".//area")
    if area is None:
        raise NormalizeError("forecast.area", "bmkg_xml")
    parameters = area.findall("parameter")
    if not parameters:
        raise NormalizeError("forecast.area.parameter", "bmkg_xml")

    current: Dict[str, str] = {}
    stamps: Dict[str, str] = {}
    for parameter in parameters:
        parameter_id = parameter.get("id")
        if parameter_id not in PARAMETER_UNITS:
            continue
        timerange = _first_timerange(parameter)
        if timerange is None:
            continue
        value = _value_in_unit(timerange, PARAMETER_UNITS[parameter_id])
        if value:
            current[parameter_id] = value
            if timerange.get("datetime"):
                stamps[parameter_id] = timerange.get("datetime")
    return current, stamps


def extract_parameters(document: str) -> Dict[str, str]:
    """Map parameter id to its current value for the ids in ``PARAMETER_UNITS``."""
    return read_forecast(document)[0]


def forecast_time(stamp: Optional[str], tz: str) -> Optional[str]:
    """``YYYYMMDDHHMM`` (UTC) as a wall-clock timestamp in ``tz``."""
    try:
        instant = dt.datetime.strptime((stamp or "").strip(), "%Y%m%d%H%M")
    except ValueError:
        return None
    return local_timestamp(tz, instant.replace(tzinfo=dt.timezone.utc))


class BmkgXmlClient(ProviderClient):
    """BMKG per-station XML forecast document (``<adm4>.xml``)."""

    provider_key = "bmkg_xml"
    address_type = StationCode
    default_base_url = "https://data.bmkg.go.id/cuaca/prakiraan-cuaca"

    def build_request(self, location: Location) -> Tuple[str, Dict[str, object]]:
        station = self._address(location)
        return f"{self.base_url.rstrip('/')}/{station.code}.xml", {}

    def decode(self, response: requests.Response) -> str:
        return response.text

    def normalize(self, raw: Any, location: Location, *, now: Optional[dt.datetime] = None) -> WeatherRecord:
        if not isinstance(raw, str):
            raise NormalizeError("XML document", self.provider_key)
        values, stamps = read_forecast(raw)
        temperature = to_float(values.get("suhu"))
        if temperature is None:
            raise NormalizeError("suhu", self.provider_key)

        code_value = to_float(values.get("cuaca"))
        description = None
        extras: Dict[str, Any] = {}
        if code_value is not None:
            code = int(code_value)
            extras["weatherCode"] = code
            description = BMKG_WEATHER_CODES.get(code, f"Kode {code}")

        return WeatherRecord(
            location_id=location.id,
            captured_at=local_timestamp(location.timezone, now),
            temperature_c=temperature,
            wind_speed_kph=to_float(values.get("kecepatan_angin")),
            wind_direction_deg=to_float(values.get("arah_angin")),
            humidity_pct=to_float(values.get("hu")),
            weather_description=description,
            observed_at=forecast_time(stamps.get("suhu"), location.timezone),
            location_meta=self.location_meta(location, adm4=self._address(location).code),
            extras=extras,
            raw=raw,
        )
