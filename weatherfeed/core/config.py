from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Type

from .locations import DEFAULT_LOCATIONS, Coordinates, Location, ProviderAddress, StationCode


DEFAULT_PIPELINE: Dict[str, object] = {
    "provider": "open_meteo",
    "outputDir": "api",
    "intervalSeconds": 300,
    "periodic": False,
    "concurrency": 3,
    "maxAttempts": 3,
    "baseDelaySeconds": 0.5,
    "timeoutSeconds": 10.0,
}


class ConfigError(RuntimeError):
    """Raised when the project configuration cannot be loaded or parsed."""


def load_project_config(path: Path, *, required: bool = True) -> dict:
    """Return the parsed configuration dictionary from ``config.json``.

    With ``required=False`` a missing file yields an empty config so the
    built-in location registry and defaults apply.
    """
    config_path = Path(path)
    if not config_path.exists():
        if not required:
            return {}
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        config = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {config_path} contains invalid JSON.") from exc
    if not isinstance(config, Mapping):
        raise ConfigError(f"Config file {config_path} must contain a JSON object.")
    return dict(config)


def pipeline_settings(config: Mapping[str, object]) -> Dict[str, object]:
    """Merge the optional ``pipeline`` section over the defaults."""
    section = config.get("pipeline") if isinstance(config, Mapping) else None
    if section is None:
        return dict(DEFAULT_PIPELINE)
    if not isinstance(section, Mapping):
        raise ConfigError("The 'pipeline' section must be an object.")
    unknown = set(section) - set(DEFAULT_PIPELINE)
    if unknown:
        raise ConfigError(f"Unknown pipeline setting(s): {', '.join(sorted(unknown))}")
    return {**DEFAULT_PIPELINE, **section}


def _build_address(location_id: str, entry: Mapping[str, object], address_type: Type) -> ProviderAddress:
    if address_type is Coordinates:
        try:
            return Coordinates(latitude=float(entry["lat"]), longitude=float(entry["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid coordinates for location '{location_id}'.") from exc
    if address_type is StationCode:
        code = entry.get("adm4")
        if not isinstance(code, str) or not code.strip():
            raise ConfigError(f"Location '{location_id}' needs an 'adm4' station code.")
        return StationCode(code=code.strip())
    raise ConfigError(f"Unsupported address type {address_type!r}.")


def load_locations(
    config: Mapping[str, object],
    *,
    default_provider: str,
    address_types: Mapping[str, Type],
) -> List[Location]:
    """Build the location registry from config.json, or the built-in one.

    Each entry may override the provider; the address is materialised for
    whatever provider serves it.
    """
    raw_locations = config.get("locations") if isinstance(config, Mapping) else None
    if raw_locations is None:
        raw_locations = DEFAULT_LOCATIONS
    if not isinstance(raw_locations, Mapping):
        raise ConfigError("The configuration must define a 'locations' mapping.")

    locations: List[Location] = []
    for location_id, entry in raw_locations.items():
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Location '{location_id}' must be an object.")
        provider = str(entry.get("provider") or default_provider)
        if provider not in address_types:
            raise ConfigError(f"Location '{location_id}' uses unknown provider '{provider}'.")
        address = _build_address(location_id, entry, address_types[provider])
        try:
            locations.append(
                Location(
                    id=str(location_id),
                    name=str(entry.get("name") or location_id),
                    address=address,
                    timezone=str(entry.get("timezone") or "UTC"),
                    provider=provider,
                )
            )
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    if not locations:
        raise ConfigError("Define at least one location under 'locations' in config.json.")
    return locations


def select_locations(locations: Iterable[Location], wanted: Optional[Iterable[str]]) -> List[Location]:
    """Restrict the registry to ``wanted`` ids, keeping registry order."""
    locations = list(locations)
    if not wanted:
        return locations
    wanted_ids = {token.strip() for token in wanted if token and token.strip()}
    unknown = wanted_ids - {location.id for location in locations}
    if unknown:
        raise ConfigError(f"Unknown location id(s): {', '.join(sorted(unknown))}")
    return [location for location in locations if location.id in wanted_ids]


def provider_setting(config: Mapping[str, object], provider: str, key: str, default=None):
    """Read a provider-specific setting from the loaded config."""
    providers = config.get("providers") if isinstance(config, Mapping) else None
    if not isinstance(providers, Mapping):
        return default
    provider_cfg = providers.get(provider)
    if not isinstance(provider_cfg, Mapping):
        return default
    return provider_cfg.get(key, default)
