from __future__ import annotations

import logging
import time
from typing import Callable, Mapping, MutableMapping, Optional

import requests

from .. import __version__

logger = logging.getLogger(__name__)

USER_AGENT = f"weatherfeed/{__version__}"

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 0.5
DEFAULT_TIMEOUT = 10.0


class TransportError(RuntimeError):
    """A single request failed at the network or HTTP layer."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class FetchError(RuntimeError):
    """Raised once every attempt for a request has failed."""

    def __init__(self, last_cause: BaseException, attempts: int) -> None:
        super().__init__(f"gave up after {attempts} attempt(s): {last_cause}")
        self.last_cause = last_cause
        self.attempts = attempts


def build_request_headers(base: Optional[Mapping[str, str]] = None) -> MutableMapping[str, str]:
    """
    Return the headers sent with every provider request.

    Args:
        base: Optional mapping of headers to seed the final set (values here win over defaults).
    """
    headers: MutableMapping[str, str] = dict(base or {})
    headers["User-Agent"] = headers.get("User-Agent") or USER_AGENT
    headers["Accept"] = headers.get("Accept") or "application/json,application/xml;q=0.9,*/*;q=0.8"
    headers.setdefault("Accept-Encoding", "gzip, deflate")
    return headers


def make_session() -> requests.Session:
    """Session shared by every client of one pipeline run."""
    session = requests.Session()
    session.headers.update(build_request_headers())
    return session


def backoff_delay(attempt: int, base_delay: float = DEFAULT_BASE_DELAY) -> float:
    """Delay after failed attempt number ``attempt`` (1-based): base, 2*base, 4*base..."""
    return base_delay * (2 ** (attempt - 1))


def fetch_with_retry(
    session: requests.Session,
    url: str,
    *,
    params: Optional[Mapping[str, object]] = None,
    headers: Optional[Mapping[str, str]] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    timeout: float = DEFAULT_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """
    GET ``url`` and return the first successful response.

    Transport errors and HTTP statuses >= 400 are retried up to
    ``max_attempts`` times with exponential backoff and no jitter. Only the
    final failure is raised, wrapped in :class:`FetchError`.
    """
    max_attempts = max(1, int(max_attempts))
    last_exc: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            response = session.get(url, params=params, headers=headers, timeout=timeout)
            if response.status_code >= 400:
                raise TransportError(f"HTTP {response.status_code} from {url}", status=response.status_code)
            return response
        except (requests.RequestException, TransportError) as exc:
            last_exc = exc
            if attempt < max_attempts:
                delay = backoff_delay(attempt, base_delay)
                logger.warning(
                    "Attempt %s/%s for %s failed: %s; retrying in %.1fs",
                    attempt,
                    max_attempts,
                    url,
                    exc,
                    delay,
                )
                sleep(delay)

    assert last_exc is not None
    raise FetchError(last_exc, max_attempts) from last_exc
