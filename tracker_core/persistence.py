from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pydantic import TypeAdapter

from tracker_core.kinds import EntityKind, get_kind
from tracker_core.metrics import with_metrics
from tracker_core.settings import DEFAULT_SETTINGS, MetricSettings

logger = logging.getLogger(__name__)


class PersistenceBridge(Protocol):
    def load(self, key: str) -> Optional[str]: ...

    def save(self, key: str, blob: str) -> bool: ...


class MemoryBridge:
    """Key-value blob store held in a dict."""

    def __init__(self, blobs: Optional[Dict[str, str]] = None) -> None:
        self.blobs: Dict[str, str] = dict(blobs or {})

    def load(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def save(self, key: str, blob: str) -> bool:
        self.blobs[key] = blob
        return True


class FileBridge:
    """One ``<key>.json`` file per collection inside ``directory``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def load(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def save(self, key: str, blob: str) -> bool:
        tmp: Optional[str] = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(blob)
            os.replace(tmp, self._path(key))
        except OSError:
            logger.exception("saving %s failed", key)
            if tmp is not None:
                Path(tmp).unlink(missing_ok=True)
            return False
        return True


def _adapter(kind: EntityKind) -> TypeAdapter:
    return TypeAdapter(List[kind.model])


def serialize_collection(kind: str | EntityKind, entities: Sequence[Any]) -> str:
    kind = get_kind(kind)
    models = [kind.model.model_validate(asdict(e)) for e in entities]
    return _adapter(kind).dump_json(models).decode("utf-8")


def deserialize_collection(
    kind: str | EntityKind,
    blob: str,
    *,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> List[Any]:
    """Validate a stored blob and rebuild entities; derived metrics are recomputed, never trusted."""
    kind = get_kind(kind)
    models = _adapter(kind).validate_json(blob)
    return [with_metrics(kind.entity_type(**m.model_dump()), as_of=as_of, settings=settings) for m in models]


def load_collection(
    bridge: PersistenceBridge,
    kind: str | EntityKind,
    *,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> List[Any]:
    kind = get_kind(kind)
    try:
        blob = bridge.load(kind.collection_key)
    except (OSError, ValueError):
        logger.exception("reading %s failed; starting empty", kind.collection_key)
        return []
    if blob is None:
        return []
    try:
        return deserialize_collection(kind, blob, as_of=as_of, settings=settings)
    except ValueError:
        logger.exception("stored %s collection is invalid; starting empty", kind.collection_key)
        return []


def save_collection(bridge: PersistenceBridge, kind: str | EntityKind, entities: Sequence[Any]) -> bool:
    kind = get_kind(kind)
    try:
        ok = bool(bridge.save(kind.collection_key, serialize_collection(kind, entities)))
    except Exception:
        logger.exception("saving %s failed", kind.collection_key)
        return False
    if not ok:
        logger.warning("saving %s was rejected by the store", kind.collection_key)
    return ok
