"""Weather provider clients."""

from .base import NormalizeError, ProviderClient
from .bmkg_json import BmkgJsonClient
from .bmkg_xml import BmkgXmlClient
from .open_meteo import OpenMeteoClient
from .registry import ADDRESS_TYPES, CLIENT_CLASSES, create_client
from .request_utils import FetchError, TransportError, fetch_with_retry, make_session

__all__ = [
    "ProviderClient",
    "NormalizeError",
    "FetchError",
    "TransportError",
    "OpenMeteoClient",
    "BmkgJsonClient",
    "BmkgXmlClient",
    "ADDRESS_TYPES",
    "CLIENT_CLASSES",
    "create_client",
    "fetch_with_retry",
    "make_session",
]
