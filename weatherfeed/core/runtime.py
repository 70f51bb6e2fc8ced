from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Type

from .config import ConfigError, load_locations, load_project_config, pipeline_settings, provider_setting, select_locations
from .locations import Location


@dataclass
class PipelineRuntime:
    """Holds derived runtime state shared by the CLI, pipeline and scheduler."""

    config_path: Path
    address_types: Mapping[str, Type]
    overrides: Dict[str, object] = field(default_factory=dict)
    only_locations: Optional[Sequence[str]] = None
    config_data: dict = field(init=False, default_factory=dict)
    settings: Dict[str, object] = field(init=False, default_factory=dict)
    registry: List[Location] = field(init=False, default_factory=list)
    locations: List[Location] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        self.reload_config()
        self.reload_locations()

    def reload_config(self) -> None:
        self.config_data = load_project_config(self.config_path, required=False)
        settings = pipeline_settings(self.config_data)
        settings.update({key: value for key, value in self.overrides.items() if value is not None})
        if settings["provider"] not in self.address_types:
            raise ConfigError(f"Unknown provider '{settings['provider']}'.")
        self.settings = settings

    def reload_locations(self) -> None:
        if not self.settings:
            self.reload_config()
        self.registry = load_locations(
            self.config_data,
            default_provider=str(self.settings["provider"]),
            address_types=self.address_types,
        )
        self.locations = select_locations(self.registry, self.only_locations)

    @property
    def output_dir(self) -> Path:
        return Path(str(self.settings["outputDir"]))

    @property
    def interval_seconds(self) -> float:
        return float(self.settings["intervalSeconds"])

    @property
    def periodic(self) -> bool:
        return bool(self.settings["periodic"])

    @property
    def concurrency(self) -> int:
        return int(self.settings["concurrency"])

    def provider_setting(self, provider_key: str, setting: str, default=None):
        return provider_setting(self.config_data, provider_key, setting, default)
