"""Core utilities: configuration, location registry and records."""

from .config import ConfigError, load_project_config, load_locations, pipeline_settings, select_locations
from .dates import local_timestamp
from .locations import DEFAULT_LOCATIONS, Coordinates, Location, StationCode
from .records import WeatherRecord
from .runtime import PipelineRuntime

__all__ = [
    "ConfigError",
    "load_project_config",
    "load_locations",
    "pipeline_settings",
    "select_locations",
    "local_timestamp",
    "DEFAULT_LOCATIONS",
    "Coordinates",
    "Location",
    "StationCode",
    "WeatherRecord",
    "PipelineRuntime",
]
