import datetime as dt
from typing import Any, Dict, List, Optional, Tuple

from ..core.dates import local_now, local_timestamp, parse_local_datetime
from ..core.locations import Location, StationCode
from ..core.records import WeatherRecord
from .base import NormalizeError, ProviderClient, require, to_float


def flatten_entries(cuaca: Any) -> List[Dict[str, Any]]:
    """BMKG groups forecast entries per day: ``[[{...}, ...], [...]]``."""
    entries: List[Dict[str, Any]] = []
    for group in cuaca or []:
        if isinstance(group, dict):
            entries.append(group)
        elif isinstance(group, list):
            entries.extend(entry for entry in group if isinstance(entry, dict))
    return entries


def select_current_entry(entries: List[Dict[str, Any]], tz: str, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """Most recent entry not later than ``now``; the earliest one when all lie ahead."""
    reference = local_now(tz, now)
    dated = []
    for entry in entries:
        stamp = parse_local_datetime(str(entry.get("local_datetime") or ""), tz)
        if stamp is not None:
            dated.append((stamp, entry))
    if not dated:
        return entries[0]
    dated.sort(key=lambda item: item[0])
    past = [entry for stamp, entry in dated if stamp <= reference]
    return past[-1] if past else dated[0][1]


class BmkgJsonClient(ProviderClient):
    """BMKG public forecast API addressed by adm4 code."""

    provider_key = "bmkg_json"
    address_type = StationCode
    default_base_url = "https://api.bmkg.go.id/publik/prakiraan-cuaca"

    def build_request(self, location: Location) -> Tuple[str, Dict[str, object]]:
        station = self._address(location)
        return self.base_url, {"adm4": station.code}

    def normalize(self, raw: Any, location: Location, *, now: Optional[dt.datetime] = None) -> WeatherRecord:
        area = require(require(raw, "data", "data", self.provider_key), 0, "data[0]", self.provider_key)
        entries = flatten_entries(require(area, "cuaca", "data[0].cuaca", self.provider_key))
        if not entries:
            raise NormalizeError("data[0].cuaca", self.provider_key)

        entry = select_current_entry(entries, location.timezone, now)
        temperature = to_float(entry.get("t"))
        if temperature is None:
            raise NormalizeError("cuaca.t", self.provider_key)

        extras: Dict[str, Any] = {}
        if entry.get("wd"):
            extras["windCardinal"] = entry["wd"]

        lokasi = area.get("lokasi") if isinstance(area, dict) else None
        lokasi = lokasi if isinstance(lokasi, dict) else {}
        return WeatherRecord(
            location_id=location.id,
            captured_at=local_timestamp(location.timezone, now),
            temperature_c=temperature,
            wind_speed_kph=to_float(entry.get("ws")),
            wind_direction_deg=to_float(entry.get("wd_deg")),
            humidity_pct=to_float(entry.get("hu")),
            weather_description=entry.get("weather_desc") or None,
            observed_at=entry.get("local_datetime"),
            location_meta=self.location_meta(
                location,
                latitude=to_float(lokasi.get("lat")),
                longitude=to_float(lokasi.get("lon")),
                adm4=self._address(location).code,
            ),
            extras=extras,
            raw=raw,
        )
