import datetime
import json

import pytest

from cafe_inventory.common.errors import NotFoundError, ValidationError
from cafe_inventory.common.snapshot import MemorySnapshotStore
from cafe_inventory.features.catalog.schemas import Location, Supplier
from cafe_inventory.features.counting.schemas import InventoryItem, InventorySession, OrderHistoryItem
from cafe_inventory.features.state.actions import (
    AddEntity,
    AddOrderHistory,
    DeleteEntity,
    ReplaceDataset,
    SetCollection,
    SetCurrentSession,
    UpdateEntity,
    UpdateSession,
)
from cafe_inventory.features.state.schemas import Collection, Dataset
from cafe_inventory.features.state.store import StateStore
from cafe_inventory.features.state.tombstones import TombstoneKind, TombstoneLedger

T0 = datetime.datetime(2026, 10, 1, 8, 0, tzinfo=datetime.timezone.utc)


def make_session(session_id="S-1", items=None, submitted=False) -> InventorySession:
    return InventorySession(
        id=session_id,
        location_id="L1",
        user_name="Ana",
        start_date=T0,
        items=items or [],
        is_submitted=submitted,
    )


def item(product_id, quantity=None, should_order=False) -> InventoryItem:
    return InventoryItem(product_id=product_id, location_id="L1", current_quantity=quantity, should_order=should_order)


def history(session_id, product_id, order_date=T0, quantity=2) -> OrderHistoryItem:
    return OrderHistoryItem(
        product_id=product_id,
        location_id="L1",
        order_date=order_date,
        quantity_ordered=quantity,
        session_id=session_id,
        suppliers=["Costco"],
        category_ids=["C1"],
    )


# --- set-current-session / update-session ---
def test_set_current_session_appends_new_session(store: StateStore):
    session = make_session()
    store.dispatch(SetCurrentSession(session=session))

    assert store.current_session == session
    assert [s.id for s in store.state.sessions] == ["S-1"]

    store.dispatch(SetCurrentSession(session=session))
    assert len(store.state.sessions) == 1


def test_update_session_keeps_current_and_list_identical(store: StateStore):
    store.dispatch(SetCurrentSession(session=make_session()))
    updated = make_session(items=[item("P1", 3)])

    store.dispatch(UpdateSession(session=updated))

    assert store.current_session == updated
    assert store.state.sessions == [updated]


def test_update_session_appends_unknown_session(store: StateStore):
    store.dispatch(UpdateSession(session=make_session("S-9")))

    assert [s.id for s in store.state.sessions] == ["S-9"]
    assert store.current_session is None


# --- set-sessions ---
def test_set_sessions_adopts_incoming_current_session(store: StateStore):
    store.dispatch(SetCurrentSession(session=make_session(items=[item("P1", 1)])))
    remote_version = make_session(items=[item("P1", 7)])

    store.dispatch(SetCollection(collection=Collection.SESSIONS, items=[remote_version]))

    assert store.current_session == remote_version


def test_set_sessions_preserves_missing_current_session(store: StateStore):
    draft = make_session("DRAFT", items=[item("P3", 0, True)])
    store.dispatch(SetCurrentSession(session=draft))

    store.dispatch(SetCollection(collection=Collection.SESSIONS, items=[make_session("OTHER")]))

    assert store.current_session == draft
    assert [s.id for s in store.state.sessions] == ["OTHER"]


def test_replace_dataset_applies_session_rule(store: StateStore):
    draft = make_session("DRAFT")
    store.dispatch(SetCurrentSession(session=draft))
    dataset = Dataset(locations=[Location(id="L9", name="Pier")], sessions=[make_session("OTHER")])

    store.dispatch(ReplaceDataset(dataset=dataset))

    assert [loc.id for loc in store.state.locations] == ["L9"]
    assert store.state.products == []
    assert store.current_session == draft


# --- deletes ---
def test_delete_product_strips_only_that_item_from_current_session(store: StateStore):
    session = make_session(items=[item("P1", 2, True), item("P3", 1), item("P4", should_order=True)])
    store.dispatch(SetCurrentSession(session=session))

    store.dispatch(DeleteEntity(collection=Collection.PRODUCTS, entity_id="P3"))

    assert [i.product_id for i in store.current_session.items] == ["P1", "P4"]
    assert store.current_session.items[0] == session.items[0]
    assert store.current_session.items[1] == session.items[2]
    assert store.state.sessions == [store.current_session]
    assert store.find(Collection.PRODUCTS, "P3") is None
    assert store.ledger.is_deleted(TombstoneKind.PRODUCTS, "P3")


def test_delete_product_leaves_other_sessions_alone(store: StateStore):
    other = make_session("OLD", items=[item("P3", 4)], submitted=True)
    store.dispatch(SetCollection(collection=Collection.SESSIONS, items=[other]))

    store.dispatch(DeleteEntity(collection=Collection.PRODUCTS, entity_id="P3"))

    assert store.state.sessions == [other]


def test_delete_category_strips_references(store: StateStore):
    store.dispatch(DeleteEntity(collection=Collection.CATEGORIES, entity_id="C2"))

    assert store.find(Collection.CATEGORIES, "C2") is None
    assert all("C2" not in p.categories for p in store.state.products)
    assert store.get(Collection.PRODUCTS, "P1").categories == ["C1"]
    assert store.ledger.is_deleted(TombstoneKind.CATEGORIES, "C2")


def test_delete_supplier_is_tombstoned_and_stripped(store: StateStore):
    store.dispatch(DeleteEntity(collection=Collection.SUPPLIERS, entity_id="S1"))

    assert store.ledger.is_deleted(TombstoneKind.SUPPLIERS, "S1")
    assert store.get(Collection.PRODUCTS, "P1").suppliers == ["S2"]
    assert store.get(Collection.PRODUCTS, "P3").suppliers == []


def test_delete_location_is_not_tombstoned(store: StateStore):
    store.dispatch(DeleteEntity(collection=Collection.LOCATIONS, entity_id="L2"))

    assert store.find(Collection.LOCATIONS, "L2") is None
    assert all(not store.ledger.deleted_ids(kind) for kind in TombstoneKind)


def test_delete_session_removes_its_history_and_current(store: StateStore):
    session = make_session()
    store.dispatch(SetCurrentSession(session=session))
    store.dispatch(AddOrderHistory(items=[history("S-1", "P1"), history("S-2", "P3")]))

    store.dispatch(DeleteEntity(collection=Collection.SESSIONS, entity_id="S-1"))

    assert store.state.sessions == []
    assert store.current_session is None
    assert [h.session_id for h in store.state.order_history] == ["S-2"]
    assert store.ledger.is_deleted(TombstoneKind.SESSIONS, "S-1")


def test_order_history_is_append_only(store: StateStore):
    with pytest.raises(ValidationError):
        store.dispatch(DeleteEntity(collection=Collection.ORDER_HISTORY, entity_id="x"))


# --- add / update ---
def test_add_entity_rejects_duplicate_id(store: StateStore):
    with pytest.raises(ValidationError):
        store.dispatch(AddEntity(collection=Collection.SUPPLIERS, entity=Supplier(id="S1", name="Again")))


def test_update_entity_requires_existing(store: StateStore):
    with pytest.raises(NotFoundError):
        store.dispatch(UpdateEntity(collection=Collection.SUPPLIERS, entity=Supplier(id="nope", name="X")))

    store.dispatch(UpdateEntity(collection=Collection.SUPPLIERS, entity=Supplier(id="S2", name="Sysco Foods")))
    assert store.get(Collection.SUPPLIERS, "S2").name == "Sysco Foods"


# --- snapshot mirroring ---
def test_every_mutation_is_mirrored(store: StateStore, snapshot: MemorySnapshotStore):
    store.dispatch(AddEntity(collection=Collection.SUPPLIERS, entity=Supplier(id="S3", name="Shoreline")))

    stored = json.loads(snapshot.get("suppliers"))
    assert [s["id"] for s in stored] == ["S1", "S2", "S3"]


def test_load_restores_state_from_snapshot(store: StateStore, snapshot: MemorySnapshotStore, ledger: TombstoneLedger):
    store.dispatch(SetCurrentSession(session=make_session(items=[item("P1", 4)])))
    store.dispatch(AddOrderHistory(items=[history("S-1", "P1")]))

    reloaded = StateStore.load(snapshot, ledger)

    assert reloaded.state.dataset() == store.state.dataset()
    assert reloaded.current_session == store.current_session
    assert reloaded.state.has_active_draft


def test_load_ignores_unreadable_current_session(snapshot: MemorySnapshotStore, ledger: TombstoneLedger):
    snapshot.set("current-session", b'{"id": 1}')

    assert StateStore.load(snapshot, ledger).current_session is None


def test_ending_a_session_clears_it_from_the_snapshot(store: StateStore, snapshot: MemorySnapshotStore):
    store.dispatch(SetCurrentSession(session=make_session()))
    store.dispatch(SetCurrentSession(session=None))

    assert snapshot.get("current-session") == b"null"


def test_load_seeds_default_catalog_when_empty():
    snapshot = MemorySnapshotStore()
    loaded = StateStore.load(snapshot, TombstoneLedger(snapshot), seed_defaults=True)

    counts = loaded.state.counts()
    assert counts["locations"] == 2
    assert counts["categories"] == 4
    assert counts["suppliers"] == 4
    assert counts["products"] == 3
    assert counts["sessions"] == 0
    assert snapshot.get("products") is not None


def test_load_discards_unreadable_collection():
    snapshot = MemorySnapshotStore({"locations": b"[{]"})
    loaded = StateStore.load(snapshot, TombstoneLedger(snapshot))

    assert loaded.state.locations == []


# --- queries ---
def test_last_order_info_uses_most_recent_order_within_a_year(store: StateStore):
    now = datetime.datetime(2026, 10, 18, tzinfo=datetime.timezone.utc)
    store.dispatch(
        AddOrderHistory(
            items=[
                history("A", "P1", order_date=now - datetime.timedelta(days=400), quantity=9),
                history("B", "P1", order_date=now - datetime.timedelta(days=20), quantity=4),
                history("C", "P1", order_date=now - datetime.timedelta(days=60), quantity=1),
            ]
        )
    )

    info = store.last_order_info("P1", "L1", now=now)

    assert info.quantity == 4
    assert info.date == now - datetime.timedelta(days=20)
    assert store.last_order_info("P3", "L1", now=now) is None
