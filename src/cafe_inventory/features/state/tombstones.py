"""Tombstone ledger for locally deleted categories, products, sessions and suppliers.

Each kind is kept twice in the snapshot store: a timestamped list
(``deleted-<kind>-with-timestamp``) that drives the retention sweep, and a
plain id list (``deleted-<kind>``) that the reconciliation filter reads. The
two are always written together, and ``deleted_ids`` reads both, so an entry
whose id list write failed still filters the pull.

Writes are best-effort. A failed write is logged and the deletion may be
resurrected by the next pull; it never fails the mutation that caused it.
"""

import datetime
import logging
from enum import Enum
from typing import Callable, Dict, FrozenSet, List

import pydantic
from pydantic import BaseModel, TypeAdapter

from ...common.models import utcnow
from ...common.snapshot import SnapshotStore

logger = logging.getLogger(__name__)


class TombstoneKind(str, Enum):
    CATEGORIES = "categories"
    PRODUCTS = "products"
    SESSIONS = "sessions"
    SUPPLIERS = "suppliers"

    @property
    def ids_key(self) -> str:
        return f"deleted-{self.value}"

    @property
    def entries_key(self) -> str:
        return f"deleted-{self.value}-with-timestamp"


class Tombstone(BaseModel):
    entity_id: str
    deleted_at: datetime.datetime


_entries_adapter = TypeAdapter(List[Tombstone])
_ids_adapter = TypeAdapter(List[str])


class TombstoneLedger:
    def __init__(self, store: SnapshotStore, clock: Callable[[], datetime.datetime] = utcnow):
        self._store = store
        self._clock = clock

    def entries(self, kind: TombstoneKind) -> List[Tombstone]:
        raw = self._store.get(kind.entries_key)
        if raw is None:
            return []
        try:
            return _entries_adapter.validate_json(raw)
        except pydantic.ValidationError:
            logger.warning("Ignoring unreadable tombstone list '%s'", kind.entries_key, exc_info=True)
            return []

    def deleted_ids(self, kind: TombstoneKind) -> FrozenSet[str]:
        from_entries = frozenset(entry.entity_id for entry in self.entries(kind))
        raw = self._store.get(kind.ids_key)
        if raw is None:
            return from_entries
        try:
            return from_entries | frozenset(_ids_adapter.validate_json(raw))
        except pydantic.ValidationError:
            logger.warning("Rebuilding unreadable id list '%s' from timestamps", kind.ids_key)
            return from_entries

    def is_deleted(self, kind: TombstoneKind, entity_id: str) -> bool:
        return entity_id in self.deleted_ids(kind)

    def record_deletion(self, kind: TombstoneKind, entity_id: str) -> None:
        entries = self.entries(kind)
        entries.append(Tombstone(entity_id=entity_id, deleted_at=self._clock()))
        self._write(kind, entries)
        logger.debug("Tombstoned %s %s", kind.value, entity_id)

    def prune_older_than(self, kind: TombstoneKind, threshold: datetime.datetime) -> List[str]:
        """Drop entries deleted before ``threshold`` and return the surviving ids."""
        entries = self.entries(kind)
        surviving = [entry for entry in entries if entry.deleted_at >= threshold]
        self._write(kind, surviving)
        if len(surviving) != len(entries):
            logger.info("Pruned %d %s tombstone(s)", len(entries) - len(surviving), kind.value)
        return self._ids(surviving)

    def prune_all(self, threshold: datetime.datetime) -> Dict[TombstoneKind, List[str]]:
        return {kind: self.prune_older_than(kind, threshold) for kind in TombstoneKind}

    @staticmethod
    def _ids(entries: List[Tombstone]) -> List[str]:
        return list(dict.fromkeys(entry.entity_id for entry in entries))

    def _write(self, kind: TombstoneKind, entries: List[Tombstone]) -> None:
        payloads = (
            (kind.entries_key, _entries_adapter.dump_json(entries)),
            (kind.ids_key, _ids_adapter.dump_json(self._ids(entries))),
        )
        for key, payload in payloads:
            try:
                self._store.set(key, payload)
            except OSError:
                logger.error("Failed to persist '%s'; tombstones may reappear on the next pull", key, exc_info=True)
