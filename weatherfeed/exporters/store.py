"""JSON file store: one slot per location plus the ``locations.json`` index."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..core.locations import Location
from ..core.records import WeatherRecord


logger = logging.getLogger(__name__)

INDEX_NAME = "locations.json"
FALLBACK_KEY = "_fallback"
FALLBACK_NOTE = "Refresh failed; serving the last stored reading."


class StoreError(RuntimeError):
    """Raised when a slot or the index cannot be read or written."""


@dataclass(frozen=True)
class FallbackResult:
    location_id: str
    path: Optional[Path]

    @property
    def used(self) -> bool:
        return self.path is not None


def dump_document(document: Any) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def atomic_write_json(path: Path, document: Any) -> Path:
    """
    Serialise ``document`` next to ``path`` and rename it into place.

    Readers see either the previous file or the complete new one; the staging
    file is removed whenever the write does not complete.
    """
    path = Path(path)
    tmp_name: Optional[str] = None
    try:
        payload = dump_document(document)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
        tmp_name = None
    except (OSError, TypeError, ValueError) as exc:
        raise StoreError(f"Could not write {path}: {exc}") from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
    return path


def build_index(locations: Iterable[Location]) -> List[Dict[str, str]]:
    """Ordered ``{id, name}`` manifest of the registry."""
    return [{"id": location.id, "name": location.name} for location in locations]


class JsonStore:
    """
    Directory of JSON documents keyed by location id.

    Creating the directory is the only step that can fail a whole run; every
    other operation touches a single slot.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Could not create output directory {self.root}: {exc}") from exc
        if not self.root.is_dir():
            raise StoreError(f"Output path {self.root} is not a directory.")

    @property
    def index_path(self) -> Path:
        return self.root / INDEX_NAME

    def slot_path(self, location_id: str) -> Path:
        return self.root / f"{location_id}.json"

    def read(self, location_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored document, or ``None`` when the slot is empty."""
        path = self.slot_path(location_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"Could not read {path}: {exc}") from exc
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreError(f"{path} does not contain valid JSON.") from exc
        if not isinstance(document, dict):
            raise StoreError(f"{path} does not contain a JSON object.")
        return document

    def persist(self, location_id: str, record: WeatherRecord) -> Path:
        if record.location_id != location_id:
            raise StoreError(f"Record for '{record.location_id}' cannot be stored under '{location_id}'.")
        return atomic_write_json(self.slot_path(location_id), record.to_document())

    def persist_fallback(self, location_id: str, error: BaseException, attempted_at: str) -> FallbackResult:
        """Re-persist the previous document with a ``_fallback`` annotation, if one exists."""
        previous = self.read(location_id)
        if previous is None:
            return FallbackResult(location_id, None)
        previous[FALLBACK_KEY] = {
            "note": FALLBACK_NOTE,
            "error": str(error),
            "attemptedAt": attempted_at,
        }
        path = atomic_write_json(self.slot_path(location_id), previous)
        return FallbackResult(location_id, path)

    def write_index(self, locations: Iterable[Location]) -> Path:
        path = atomic_write_json(self.index_path, build_index(locations))
        logger.info("Wrote index %s", path)
        return path
