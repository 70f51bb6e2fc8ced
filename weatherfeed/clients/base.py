from __future__ import annotations

import datetime as dt
import math
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple, Type

import requests

from ..core.locations import Location, ProviderAddress
from ..core.records import WeatherRecord
from .request_utils import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_TIMEOUT,
    fetch_with_retry,
    make_session,
)


class NormalizeError(RuntimeError):
    """Raised when a payload lacks a field the adapter needs. Never retried."""

    def __init__(self, missing_field: str, provider: str = "") -> None:
        prefix = f"{provider}: " if provider else ""
        super().__init__(f"{prefix}payload is missing '{missing_field}'")
        self.missing_field = missing_field


def require(container: Any, key: Any, field_name: str, provider: str) -> Any:
    """Return ``container[key]`` or raise :class:`NormalizeError` naming ``field_name``."""
    try:
        value = container[key]
    except (KeyError, IndexError, TypeError) as exc:
        raise NormalizeError(field_name, provider) from exc
    if value is None:
        raise NormalizeError(field_name, provider)
    return value


def to_float(value: Any) -> Optional[float]:
    """Numeric value or ``None``; ``nan`` and infinities count as missing."""
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class ProviderClient(ABC):
    """
    Base class for provider adapters.

    A client knows how to address one provider (:meth:`build_request`), how
    to decode its response body (:meth:`decode`) and how to reshape the
    decoded payload into a :class:`WeatherRecord` (:meth:`normalize`).
    """

    provider_key: str = ""
    address_type: Type = object
    default_base_url: str = ""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        base_url: Optional[str] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session or make_session()
        self.base_url = base_url or self.default_base_url
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.timeout = timeout
        self.sleep = sleep

    def _address(self, location: Location) -> ProviderAddress:
        if not isinstance(location.address, self.address_type):
            raise TypeError(
                f"{self.provider_key} needs a {self.address_type.__name__} address, "
                f"got {type(location.address).__name__} for '{location.id}'."
            )
        return location.address

    @abstractmethod
    def build_request(self, location: Location) -> Tuple[str, Dict[str, object]]:
        """Return ``(url, query params)`` for ``location``."""

    def decode(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise NormalizeError("JSON body", self.provider_key) from exc

    def fetch(self, location: Location) -> Any:
        """Fetch the raw payload for ``location``; raises ``FetchError`` when retries run out."""
        url, params = self.build_request(location)
        response = fetch_with_retry(
            self.session,
            url,
            params=params or None,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            timeout=self.timeout,
            sleep=self.sleep,
        )
        return self.decode(response)

    @abstractmethod
    def normalize(self, raw: Any, location: Location, *, now: Optional[dt.datetime] = None) -> WeatherRecord:
        """Reshape ``raw`` into a canonical record for ``location``."""

    def get_current(self, location: Location, *, now: Optional[dt.datetime] = None) -> WeatherRecord:
        return self.normalize(self.fetch(location), location, now=now)

    @staticmethod
    def location_meta(location: Location, **fields: Any) -> Dict[str, Any]:
        return {"name": location.name, **fields, "timezone": location.timezone}
