"""Fetch, normalise and persist every location, then rebuild the index."""

from __future__ import annotations

import concurrent.futures
import datetime as dt
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar, Union

from ..clients.base import NormalizeError, ProviderClient
from ..clients.request_utils import FetchError
from ..core.dates import local_timestamp
from ..core.locations import Location
from .store import JsonStore, StoreError


logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Success:
    location_id: str
    path: Path
    kind = "success"


@dataclass(frozen=True)
class FallbackUsed:
    location_id: str
    path: Path
    error: str
    kind = "fallback"


@dataclass(frozen=True)
class Skipped:
    location_id: str
    reason: str
    kind = "skipped"


Outcome = Union[Success, FallbackUsed, Skipped]


def run_in_batches(
    items: Sequence[T],
    worker_fn: Callable[[T], R],
    *,
    batch_size: int,
    max_workers: Optional[int] = None,
) -> List[R]:
    """
    Run ``worker_fn`` over ``items`` on a thread pool, one batch at a time.

    Each batch finishes before the next is submitted. Results keep the
    order of ``items``. ``batch_size <= 0`` submits everything at once.
    """
    item_list = list(items)
    if not item_list:
        return []
    if batch_size <= 0:
        batch_size = len(item_list)

    results: List[R] = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers or batch_size) as executor:
        for i in range(0, len(item_list), batch_size):
            batch = item_list[i : i + batch_size]
            futures = [executor.submit(worker_fn, item) for item in batch]
            results.extend(future.result() for future in futures)
    return results


def summarise(outcomes: Iterable[Outcome]) -> Dict[str, int]:
    counts = Counter(outcome.kind for outcome in outcomes)
    return {kind: counts.get(kind, 0) for kind in (Success.kind, FallbackUsed.kind, Skipped.kind)}


class Pipeline:
    """
    One pass over the location registry.

    Per-location failures end up as ``FallbackUsed`` or ``Skipped`` outcomes;
    only the index write can fail the pass.
    """

    def __init__(
        self,
        store: JsonStore,
        clients: Mapping[str, ProviderClient],
        *,
        concurrency_limit: int = DEFAULT_CONCURRENCY,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ) -> None:
        self.store = store
        self.clients = dict(clients)
        self.concurrency_limit = concurrency_limit
        self.clock = clock or (lambda: dt.datetime.now(dt.timezone.utc))

    def process_location(self, location: Location) -> Outcome:
        client = self.clients.get(location.provider)
        if client is None:
            reason = f"no client configured for provider '{location.provider}'"
            logger.error(f"{location.name}: Skipped ({reason})")
            return Skipped(location.id, reason)

        now = self.clock()
        try:
            record = client.get_current(location, now=now)
        except (FetchError, NormalizeError) as exc:
            logger.warning(f"{location.name}: Refresh failed: {exc}")
            return self._fall_back(location, exc, now)

        try:
            path = self.store.persist(location.id, record)
        except StoreError as exc:
            logger.error(f"{location.name}: Skipped ({exc})")
            return Skipped(location.id, str(exc))

        logger.info(f"{location.name}: Updated {path} ({record.temperature_c:g}°C)")
        return Success(location.id, path)

    def _fall_back(self, location: Location, error: Exception, now: dt.datetime) -> Outcome:
        try:
            result = self.store.persist_fallback(location.id, error, local_timestamp(location.timezone, now))
        except StoreError as exc:
            logger.error(f"{location.name}: Skipped (fallback failed: {exc})")
            return Skipped(location.id, f"fallback failed: {exc}")

        if result.path is None:
            reason = f"nothing to fall back to ({error})"
            logger.warning(f"{location.name}: Skipped ({reason})")
            return Skipped(location.id, reason)

        logger.warning(f"{location.name}: Serving previous record from {result.path}")
        return FallbackUsed(location.id, result.path, str(error))

    def _process_safely(self, location: Location) -> Outcome:
        try:
            return self.process_location(location)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception(f"{location.name}: Unexpected error: {exc}")
            return Skipped(location.id, f"unexpected error: {exc}")

    def run_once(self, locations: Sequence[Location], registry: Optional[Sequence[Location]] = None) -> List[Outcome]:
        """
        Process every location, then write the index exactly once.

        The index lists ``registry`` (default: ``locations``) so a run over a
        subset still publishes every configured location.
        """
        logger.info(f"Updating {len(locations)} location(s), {self.concurrency_limit or 'all'} at a time")
        outcomes = run_in_batches(locations, self._process_safely, batch_size=self.concurrency_limit)
        self.store.write_index(locations if registry is None else registry)

        counts = summarise(outcomes)
        logger.info(
            f"Run complete: {counts['success']} updated, "
            f"{counts['fallback']} fallback, {counts['skipped']} skipped"
        )
        return outcomes
