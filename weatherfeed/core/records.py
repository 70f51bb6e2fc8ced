from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def _format_number(value: float) -> str:
    # 10.0 -> "10", 29.5 -> "29.5"
    return f"{value:g}"


@dataclass
class WeatherRecord:
    """Canonical, provider independent reading for one location."""

    location_id: str
    captured_at: str
    temperature_c: float
    wind_speed_kph: Optional[float]
    wind_direction_deg: Optional[float]
    humidity_pct: Optional[float] = None
    weather_description: Optional[str] = None
    observed_at: Optional[str] = None
    location_meta: Dict[str, Any] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)
    raw: Any = None

    def to_document(self) -> Dict[str, Any]:
        """Return the JSON document persisted under the location's slot."""
        current: Dict[str, Any] = {"temperature": f"{_format_number(self.temperature_c)}°C"}
        if self.wind_speed_kph is not None:
            current["windSpeed"] = f"{_format_number(self.wind_speed_kph)} km/h"
        if self.wind_direction_deg is not None:
            current["windDirection"] = f"{_format_number(self.wind_direction_deg)}°"
        if self.humidity_pct is not None:
            current["humidity"] = f"{_format_number(self.humidity_pct)}%"
        if self.weather_description:
            current["weather"] = self.weather_description
        current.update(self.extras)
        current["time"] = self.observed_at or self.captured_at

        return {
            "timestamp": self.captured_at,
            "location": {key: value for key, value in self.location_meta.items() if value is not None},
            "current": current,
            "raw": self.raw,
        }
