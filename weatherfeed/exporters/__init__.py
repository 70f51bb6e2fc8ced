"""Persistence and orchestration."""

from .pipeline import FallbackUsed, Outcome, Pipeline, Skipped, Success, run_in_batches, summarise
from .store import FallbackResult, JsonStore, StoreError, atomic_write_json, build_index

__all__ = [
    "Pipeline",
    "Outcome",
    "Success",
    "FallbackUsed",
    "Skipped",
    "run_in_batches",
    "summarise",
    "JsonStore",
    "StoreError",
    "FallbackResult",
    "atomic_write_json",
    "build_index",
]
