"""
Application State Store

The single in-process source of truth for the inventory dataset and the
session currently being counted. State only changes through ``dispatch`` with
one of the intents from ``actions``; every dispatch is synchronous, so readers
on the event loop never see a half-applied mutation.

After each mutation the collections that changed, and the current session,
are mirrored into the local snapshot store. Deleting a category, product, session or supplier also writes
a tombstone so the next remote pull cannot bring it back.
"""

import datetime
import logging
from typing import Dict, List, Optional

import pydantic
from pydantic import TypeAdapter

from ...common.errors import NotFoundError, ValidationError
from ...common.models import utcnow
from ...common.snapshot import SnapshotStore
from ..counting.schemas import InventorySession, LastOrderInfo
from .actions import (
    Action,
    AddEntity,
    AddOrderHistory,
    DeleteEntity,
    ReplaceDataset,
    SetCollection,
    SetCurrentSession,
    UpdateEntity,
    UpdateSession,
)
from .defaults import default_catalog
from .schemas import AppState, Collection, Dataset
from .tombstones import TombstoneKind, TombstoneLedger

logger = logging.getLogger(__name__)

LAST_ORDER_WINDOW = datetime.timedelta(days=365)

_ADAPTERS: Dict[Collection, TypeAdapter] = {c: TypeAdapter(List[c.entity_type]) for c in Collection}

CURRENT_SESSION_KEY = "current-session"
_current_adapter = TypeAdapter(Optional[InventorySession])

TOMBSTONED: Dict[Collection, TombstoneKind] = {
    Collection.CATEGORIES: TombstoneKind.CATEGORIES,
    Collection.PRODUCTS: TombstoneKind.PRODUCTS,
    Collection.SESSIONS: TombstoneKind.SESSIONS,
    Collection.SUPPLIERS: TombstoneKind.SUPPLIERS,
}

_CATALOG = (Collection.LOCATIONS, Collection.CATEGORIES, Collection.SUPPLIERS, Collection.PRODUCTS)


def _without(items: list, entity_id: str) -> list:
    return [item for item in items if item.id != entity_id]


def _strip_product(session: InventorySession, product_id: str) -> InventorySession:
    return session.model_copy(update={"items": [i for i in session.items if i.product_id != product_id]})


class StateStore:
    def __init__(self, snapshot: SnapshotStore, ledger: TombstoneLedger, state: Optional[AppState] = None):
        self._snapshot = snapshot
        self._ledger = ledger
        self._state = state or AppState()

    @classmethod
    def load(cls, snapshot: SnapshotStore, ledger: TombstoneLedger, seed_defaults: bool = False) -> "StateStore":
        """Cold start: rebuild state from the snapshot store."""
        loaded = {}
        seeded = []
        defaults = default_catalog() if seed_defaults else {}
        for collection in Collection:
            items = cls._read(snapshot, collection)
            if items is None and collection in defaults:
                items = defaults[collection]
                seeded.append(collection)
            loaded[collection.field] = items or []
        current = cls._read_current(snapshot)
        if current is not None:
            current = next((s for s in loaded["sessions"] if s.id == current.id), current)
        store = cls(snapshot, ledger, AppState(**loaded, current_session=current))
        for collection in seeded:
            store._write(collection, store._state.collection(collection))
        logger.info(
            "Loaded local snapshot: %s%s",
            store._state.counts(),
            f" (seeded {', '.join(c.value for c in seeded)})" if seeded else "",
        )
        return store

    # --- Reads ---
    @property
    def state(self) -> AppState:
        return self._state

    @property
    def current_session(self) -> Optional[InventorySession]:
        return self._state.current_session

    @property
    def ledger(self) -> TombstoneLedger:
        return self._ledger

    def find(self, collection: Collection, entity_id: str):
        return next((e for e in self._state.collection(collection) if e.id == entity_id), None)

    def get(self, collection: Collection, entity_id: str):
        entity = self.find(collection, entity_id)
        if entity is None:
            raise NotFoundError(collection.entity_type.__name__, entity_id)
        return entity

    def last_order_info(
        self, product_id: str, location_id: str, now: Optional[datetime.datetime] = None
    ) -> Optional[LastOrderInfo]:
        """Most recent order of a product at a location within the last twelve months."""
        cutoff = (now or utcnow()) - LAST_ORDER_WINDOW
        orders = [
            o
            for o in self._state.order_history
            if o.product_id == product_id and o.location_id == location_id and o.order_date >= cutoff
        ]
        if not orders:
            return None
        last = max(orders, key=lambda o: o.order_date)
        return LastOrderInfo(date=last.order_date, quantity=last.quantity_ordered)

    # --- Writes ---
    def dispatch(self, action: Action) -> AppState:
        previous = self._state
        self._state = self._reduce(previous, action)
        self._mirror(previous, self._state)
        return self._state

    def _reduce(self, state: AppState, action: Action) -> AppState:
        if isinstance(action, ReplaceDataset):
            update = {c.field: list(action.dataset.collection(c)) for c in Collection if c is not Collection.SESSIONS}
            return self._set_sessions(state.model_copy(update=update), action.dataset.sessions)
        if isinstance(action, SetCollection):
            if action.collection is Collection.SESSIONS:
                return self._set_sessions(state, action.items)
            return state.model_copy(update={action.collection.field: list(action.items)})
        if isinstance(action, AddEntity):
            return self._add(state, action.collection, action.entity)
        if isinstance(action, UpdateEntity):
            if action.collection is Collection.SESSIONS:
                return self._update_session(state, action.entity)
            return self._update(state, action.collection, action.entity)
        if isinstance(action, UpdateSession):
            return self._update_session(state, action.session)
        if isinstance(action, DeleteEntity):
            return self._delete(state, action.collection, action.entity_id)
        if isinstance(action, SetCurrentSession):
            return self._set_current_session(state, action.session)
        if isinstance(action, AddOrderHistory):
            return state.model_copy(update={"order_history": state.order_history + list(action.items)})
        raise TypeError(f"Unsupported action: {type(action).__name__}")

    @staticmethod
    def _set_sessions(state: AppState, sessions: List[InventorySession]) -> AppState:
        current = state.current_session
        if current is not None:
            synced = next((s for s in sessions if s.id == current.id), None)
            if synced is not None:
                current = synced
            else:
                logger.debug("Preserving current session %s absent from incoming sessions", current.id)
        return state.model_copy(update={"sessions": list(sessions), "current_session": current})

    @staticmethod
    def _set_current_session(state: AppState, session: Optional[InventorySession]) -> AppState:
        update = {"current_session": session}
        if session is not None and not any(s.id == session.id for s in state.sessions):
            update["sessions"] = state.sessions + [session]
        return state.model_copy(update=update)

    @staticmethod
    def _update_session(state: AppState, session: InventorySession) -> AppState:
        if any(s.id == session.id for s in state.sessions):
            sessions = [session if s.id == session.id else s for s in state.sessions]
        else:
            sessions = state.sessions + [session]
        current = state.current_session
        if current is not None and current.id == session.id:
            current = session
        return state.model_copy(update={"sessions": sessions, "current_session": current})

    @staticmethod
    def _add(state: AppState, collection: Collection, entity) -> AppState:
        if collection is Collection.ORDER_HISTORY:
            return state.model_copy(update={"order_history": state.order_history + [entity]})
        items = state.collection(collection)
        if any(e.id == entity.id for e in items):
            raise ValidationError(f"{collection.entity_type.__name__} {entity.id} already exists")
        return state.model_copy(update={collection.field: items + [entity]})

    @staticmethod
    def _update(state: AppState, collection: Collection, entity) -> AppState:
        if collection is Collection.ORDER_HISTORY:
            raise ValidationError("Order history is append-only")
        items = state.collection(collection)
        if not any(e.id == entity.id for e in items):
            raise NotFoundError(collection.entity_type.__name__, entity.id)
        return state.model_copy(update={collection.field: [entity if e.id == entity.id else e for e in items]})

    def _delete(self, state: AppState, collection: Collection, entity_id: str) -> AppState:
        if collection is Collection.ORDER_HISTORY:
            raise ValidationError("Order history rows are only removed with their session")
        if collection in TOMBSTONED:
            self._ledger.record_deletion(TOMBSTONED[collection], entity_id)

        update = {collection.field: _without(state.collection(collection), entity_id)}
        if collection is Collection.CATEGORIES:
            update["products"] = [
                p.model_copy(update={"categories": [c for c in p.categories if c != entity_id]})
                if entity_id in p.categories
                else p
                for p in state.products
            ]
        elif collection is Collection.SUPPLIERS:
            update["products"] = [
                p.model_copy(update={"suppliers": [s for s in p.suppliers if s != entity_id]})
                if entity_id in p.suppliers
                else p
                for p in state.products
            ]
        elif collection is Collection.PRODUCTS and state.current_session is not None:
            current = _strip_product(state.current_session, entity_id)
            update["current_session"] = current
            # Keep the current session's copy in `sessions` identical; other sessions keep their items.
            update["sessions"] = [current if s.id == current.id else s for s in state.sessions]
        elif collection is Collection.SESSIONS:
            update["order_history"] = [o for o in state.order_history if o.session_id != entity_id]
            if state.current_session is not None and state.current_session.id == entity_id:
                update["current_session"] = None
        return state.model_copy(update=update)

    # --- Snapshot mirroring ---
    def _mirror(self, previous: AppState, current: AppState) -> None:
        for collection in Collection:
            items = current.collection(collection)
            if items is not previous.collection(collection):
                self._write(collection, items)
        if current.current_session is not previous.current_session:
            try:
                self._snapshot.set(CURRENT_SESSION_KEY, _current_adapter.dump_json(current.current_session))
            except OSError:
                logger.error("Failed to mirror the current session to the local snapshot", exc_info=True)

    def _write(self, collection: Collection, items: list) -> None:
        try:
            self._snapshot.set(collection.value, _ADAPTERS[collection].dump_json(items))
        except OSError:
            logger.error("Failed to mirror '%s' to the local snapshot", collection.value, exc_info=True)

    @staticmethod
    def _read(snapshot: SnapshotStore, collection: Collection) -> Optional[list]:
        raw = snapshot.get(collection.value)
        if raw is None:
            return None
        try:
            return _ADAPTERS[collection].validate_json(raw)
        except pydantic.ValidationError:
            logger.warning("Discarding unreadable snapshot for '%s'", collection.value, exc_info=True)
            return None

    @staticmethod
    def _read_current(snapshot: SnapshotStore) -> Optional[InventorySession]:
        raw = snapshot.get(CURRENT_SESSION_KEY)
        if raw is None:
            return None
        try:
            return _current_adapter.validate_json(raw)
        except pydantic.ValidationError:
            logger.warning("Discarding unreadable current session snapshot", exc_info=True)
            return None

    def export_dataset(self) -> Dataset:
        return self._state.dataset()
