"""Provider client registry."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Type

import requests

from .base import ProviderClient
from .bmkg_json import BmkgJsonClient
from .bmkg_xml import BmkgXmlClient
from .open_meteo import OpenMeteoClient

CLIENT_CLASSES: Dict[str, Type[ProviderClient]] = {
    OpenMeteoClient.provider_key: OpenMeteoClient,
    BmkgJsonClient.provider_key: BmkgJsonClient,
    BmkgXmlClient.provider_key: BmkgXmlClient,
}

ADDRESS_TYPES: Dict[str, Type] = {key: cls.address_type for key, cls in CLIENT_CLASSES.items()}


def create_client(
    provider_key: str,
    session: requests.Session,
    settings: Mapping[str, object],
    *,
    base_url: Optional[str] = None,
    **kwargs,
) -> ProviderClient:
    """
    Factory function to create the client for a provider.

    Args:
        provider_key: Provider identifier (``open_meteo``, ``bmkg_json``, ``bmkg_xml``)
        session: Shared HTTP session
        settings: Merged pipeline settings (retry and timeout values)
        base_url: Optional endpoint override from ``providers.<key>.baseUrl``

    Returns:
        Configured client instance
    """
    try:
        client_cls = CLIENT_CLASSES[provider_key]
    except KeyError:
        raise ValueError(f"Unknown provider: {provider_key}") from None
    return client_cls(
        session,
        base_url=base_url,
        max_attempts=int(settings.get("maxAttempts", 3)),
        base_delay=float(settings.get("baseDelaySeconds", 0.5)),
        timeout=float(settings.get("timeoutSeconds", 10.0)),
        **kwargs,
    )
