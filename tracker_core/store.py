from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from tracker_core.importer import ImportOutcome, ImportReport, import_records
from tracker_core.kinds import KINDS, EntityKind, Reference, dependents_of, get_kind
from tracker_core.parsers import References, entity_to_row
from tracker_core.persistence import PersistenceBridge, load_collection, save_collection
from tracker_core.settings import DEFAULT_SETTINGS, MetricSettings

logger = logging.getLogger(__name__)


class EntityStore:
    """Owns every entity collection; each public mutation is applied whole and then saved.

    The store never hands out its internal lists. Callers read with ``get``/``find``
    and change state only through ``create``, ``update``, ``delete`` and the import
    methods.
    """

    def __init__(
        self,
        bridge: Optional[PersistenceBridge] = None,
        *,
        settings: MetricSettings = DEFAULT_SETTINGS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.bridge = bridge
        self.settings = settings
        self.today = today
        self._collections: Dict[str, List[Any]] = {name: [] for name in KINDS}
        self.last_save_ok = True

    @classmethod
    def open(cls, bridge: PersistenceBridge, **kwargs: Any) -> EntityStore:
        store = cls(bridge, **kwargs)
        as_of = store.today()
        for name in KINDS:
            store._collections[name] = load_collection(bridge, name, as_of=as_of, settings=store.settings)
        store._repair_references()
        return store

    # ---------------- Reads ----------------
    def get(self, kind: str | EntityKind) -> List[Any]:
        return list(self._collections[get_kind(kind).name])

    def find(self, kind: str | EntityKind, entity_id: str) -> Any:
        kind = get_kind(kind)
        for entity in self._collections[kind.name]:
            if entity.id == entity_id:
                return entity
        raise KeyError(f"{kind.name} {entity_id!r} not found")

    def references_for(self, kind: str | EntityKind) -> References:
        """Live entities by id for every collection ``kind`` points at."""
        kind = get_kind(kind)
        return {
            ref.target: {e.id: e for e in self._collections[ref.target]}
            for ref in kind.references
        }

    # ---------------- Mutations ----------------
    def create(self, kind: str | EntityKind, values: Mapping[str, Any]) -> Any:
        kind = get_kind(kind)
        entity = self._parse(kind, self._to_row(kind, values))
        entity = replace(entity, id=self._new_id(kind))
        self._collections[kind.name].append(entity)
        self._commit(kind.name)
        return entity

    def update(self, kind: str | EntityKind, entity_id: str, changes: Mapping[str, Any]) -> Any:
        kind = get_kind(kind)
        current = self.find(kind, entity_id)
        if "id" in changes and changes["id"] != entity_id:
            raise ValueError(f"{kind.name} id is immutable")
        row = entity_to_row(current, kind.columns)
        row.update(self._to_row(kind, {k: v for k, v in changes.items() if k != "id"}))
        updated = replace(self._parse(kind, row), id=entity_id)
        items = self._collections[kind.name]
        items[items.index(current)] = updated
        self._commit(kind.name)
        return updated

    def delete(self, kind: str | EntityKind, entity_id: str) -> Any:
        kind = get_kind(kind)
        entity = self.find(kind, entity_id)
        self._collections[kind.name] = [e for e in self._collections[kind.name] if e.id != entity_id]
        touched = [kind.name] + self._release_dependents(kind.name, {entity_id})
        self._commit(*touched)
        return entity

    def apply_import_batch(self, kind: str | EntityKind, entities: Sequence[Any]) -> List[Any]:
        """Append a parsed batch in one step; nothing is applied if any entity is invalid here."""
        kind = get_kind(kind)
        existing = {e.id for e in self._collections[kind.name]}
        references = self.references_for(kind)
        batch: List[Any] = []
        for entity in entities:
            if not isinstance(entity, kind.entity_type):
                raise TypeError(f"expected {kind.entity_type.__name__}, got {type(entity).__name__}")
            for ref in kind.references:
                key = getattr(entity, ref.attribute)
                if key is not None and key not in references[ref.target]:
                    raise ValueError(f"{ref.header} {key!r} does not exist")
            if entity.id is None:
                entity = replace(entity, id=self._new_id(kind, taken=existing))
            elif entity.id in existing:
                raise ValueError(f"{kind.name} id {entity.id!r} already exists")
            existing.add(entity.id)
            batch.append(entity)
        self._collections[kind.name] = self._collections[kind.name] + batch
        if batch:
            self._commit(kind.name)
        return batch

    def import_file(self, kind: str | EntityKind, raw: Union[str, bytes], *, fmt: Optional[str] = None) -> ImportReport:
        kind = get_kind(kind)
        report = import_records(
            kind,
            raw,
            fmt=fmt,
            references=self.references_for(kind),
            as_of=self.today(),
            settings=self.settings,
        )
        if report.outcome is ImportOutcome.IMPORTED:
            report.entities = self.apply_import_batch(kind, report.entities)
        return report

    # ---------------- Internals ----------------
    def _parse(self, kind: EntityKind, row: Dict[str, str]) -> Any:
        return kind.parser(row, references=self.references_for(kind), as_of=self.today(), settings=self.settings)

    def _to_row(self, kind: EntityKind, values: Mapping[str, Any]) -> Dict[str, str]:
        row: Dict[str, str] = {}
        for name, value in values.items():
            header = kind.header_for(name)
            if header is None:
                raise ValueError(f"unknown {kind.name} field {name!r}")
            row[header] = "" if value is None else str(value)
        return row

    def _new_id(self, kind: EntityKind, taken: Optional[set] = None) -> str:
        taken = taken if taken is not None else {e.id for e in self._collections[kind.name]}
        while True:
            candidate = f"{kind.name}-{uuid.uuid4().hex[:12]}"
            if candidate not in taken:
                return candidate

    def _release_dependents(self, target: str, removed: set) -> List[str]:
        touched: List[str] = []
        for dep, ref in dependents_of(target):
            items = self._collections[dep.name]
            linked = [e for e in items if getattr(e, ref.attribute) in removed]
            if not linked:
                continue
            if ref.on_delete == "cascade":
                self._collections[dep.name] = [e for e in items if getattr(e, ref.attribute) not in removed]
                logger.info("removed %d %s record(s) linked to deleted %s", len(linked), dep.name, target)
                touched.append(dep.name)
                touched += self._release_dependents(dep.name, {e.id for e in linked})
            else:
                self._collections[dep.name] = [
                    self._detach(e, ref) if getattr(e, ref.attribute) in removed else e for e in items
                ]
                logger.info("detached %d %s record(s) from deleted %s", len(linked), dep.name, target)
                touched.append(dep.name)
        return touched

    @staticmethod
    def _detach(entity: Any, ref: Reference) -> Any:
        changes: Dict[str, Any] = {ref.attribute: None}
        if ref.detached_status and entity.status not in ref.keep_status:
            changes["status"] = ref.detached_status
        return replace(entity, **changes)

    def _repair_references(self) -> None:
        # Stored blobs are written per collection, so a dependent may outlive its parent.
        for kind in KINDS.values():
            for ref in kind.references:
                known = {e.id for e in self._collections[ref.target]}
                linked = {getattr(e, ref.attribute) for e in self._collections[kind.name]}
                orphans = {key for key in linked if key is not None and key not in known}
                if orphans:
                    logger.warning("%s records reference missing %s ids: %s", kind.name, ref.target, sorted(orphans))
                    self._release_dependents(ref.target, orphans)

    def _commit(self, *kinds: str) -> bool:
        if self.bridge is None:
            return True
        ok = True
        for name in dict.fromkeys(kinds):
            ok = save_collection(self.bridge, name, self._collections[name]) and ok
        self.last_save_ok = ok
        return ok
