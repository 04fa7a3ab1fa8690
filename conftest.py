"""
Root conftest for the pytest test suite.

This file contains the main fixtures that are used across the entire test suite.

The remote store is Tortoise ORM against a fresh in-memory SQLite database
per test, so every test that talks to ``TortoiseGateway`` starts from empty
tables. The local snapshot store is a ``MemorySnapshotStore``.

Key Fixtures:
- `anyio_backend`: Specifies the asyncio backend for pytest-asyncio.
- `initialize_test_db`: (autouse) Creates a fresh remote schema for each test.
- `clock`: A controllable UTC clock shared by the ledger, store and engine.
- `snapshot`, `ledger`, `store`: Local side, with a small catalog loaded.
- `gateway`: A `TortoiseGateway` over the test database.
- `fake_gateway`: An in-memory gateway that records calls and can fail on demand.
- `engine`: A `ReconciliationEngine` wired to `store` and `gateway`.
- `app_for_testing` / `client`: The FastAPI app with its production lifespan
  disabled and a test container installed.
"""

import datetime
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from tortoise import Tortoise

from cafe_inventory.common.errors import ConnectivityError
from cafe_inventory.common.snapshot import MemorySnapshotStore
from cafe_inventory.core.config import tortoise_config
from cafe_inventory.core.container import AppContainer
from cafe_inventory.features.catalog.schemas import Category, Location, Product, ProductLocation, Supplier
from cafe_inventory.features.counting.schemas import OrderSummary
from cafe_inventory.features.notifications.schemas import EmailSettings
from cafe_inventory.features.notifications.settings import EmailSettingsRepository
from cafe_inventory.features.state.actions import SetCollection
from cafe_inventory.features.state.schemas import Collection
from cafe_inventory.features.state.store import StateStore
from cafe_inventory.features.state.tombstones import TombstoneLedger
from cafe_inventory.features.sync.engine import ReconciliationEngine
from cafe_inventory.features.sync.remote import TortoiseGateway
from cafe_inventory.features.sync.schemas import SyncSettings

# Import the app
from cafe_inventory.main import app as actual_app

START = datetime.datetime(2026, 10, 18, 9, 5, tzinfo=datetime.timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime.datetime = START):
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + datetime.timedelta(**kwargs)


class FakeGateway:
    """In-memory RemoteGateway. Every call is appended to ``calls``."""

    def __init__(self):
        self.data: Dict[Collection, Dict[str, Any]] = {c: {} for c in Collection}
        self.settings: Dict[str, str] = {}
        self.calls: List[str] = []
        self.fail_upserts: set = set()
        self.fail_fetch: Optional[Collection] = None
        self.connected = True

    def seed(self, collection: Collection, *entities) -> None:
        for entity in entities:
            key = entity.record_id if collection is Collection.ORDER_HISTORY else entity.id
            self.data[collection][key] = entity

    async def test_connection(self) -> bool:
        self.calls.append("test_connection")
        return self.connected

    async def fetch_all(self, entity_type: Collection):
        self.calls.append(f"fetch_all:{entity_type.value}")
        if self.fail_fetch is entity_type:
            raise ConnectivityError(f"Failed to fetch {entity_type.value}: boom")
        return list(self.data[entity_type].values())

    async def upsert(self, entity_type: Collection, entity) -> bool:
        self.calls.append(f"upsert:{entity_type.value}:{entity.id}")
        if entity.id in self.fail_upserts:
            return False
        self.data[entity_type][entity.id] = entity
        return True

    async def delete(self, entity_type: Collection, entity_id: str) -> bool:
        self.calls.append(f"delete:{entity_type.value}:{entity_id}")
        return self.data[entity_type].pop(entity_id, None) is not None

    async def add_order_history(self, items) -> bool:
        self.calls.append(f"add_order_history:{len(items)}")
        for item in items:
            self.data[Collection.ORDER_HISTORY].setdefault(item.record_id, item)
        return True

    async def fetch_settings(self) -> Dict[str, str]:
        self.calls.append("fetch_settings")
        return dict(self.settings)

    async def upsert_setting(self, key: str, value: str) -> bool:
        self.calls.append(f"upsert_setting:{key}")
        self.settings[key] = value
        return True


class RecordingSender:
    """NotificationSender that keeps every summary it is given."""

    def __init__(self, result: bool = True):
        self.result = result
        self.sent: List[OrderSummary] = []
        self.test_emails = 0

    async def send(self, summary: OrderSummary) -> bool:
        self.sent.append(summary)
        return self.result

    async def send_test_email(self) -> bool:
        self.test_emails += 1
        return self.result


def sample_catalog() -> Dict[Collection, list]:
    return {
        Collection.LOCATIONS: [
            Location(id="L1", name="Downtown", address="1 Main St"),
            Location(id="L2", name="Harbour"),
        ],
        Collection.CATEGORIES: [
            Category(id="C1", name="Milks", color="#E3F2FD"),
            Category(id="C2", name="Cafe", color="#FFF3E0"),
        ],
        Collection.SUPPLIERS: [
            Supplier(id="S1", name="Costco"),
            Supplier(id="S2", name="Sysco"),
        ],
        Collection.PRODUCTS: [
            Product(
                id="P1",
                name="Whole Milk",
                categories=["C1"],
                suppliers=["S1", "S2"],
                locations=[ProductLocation(location_id="L1", min_threshold=5)],
                requires_quantity=True,
            ),
            Product(
                id="P3",
                name="Coffee Beans",
                categories=["C2"],
                suppliers=["S1"],
                locations=[
                    ProductLocation(location_id="L1", min_threshold=3),
                    ProductLocation(location_id="L2", min_threshold=8, is_available=False),
                ],
                requires_quantity=True,
            ),
            Product(
                id="P4",
                name="Sugar Packets",
                categories=["C2"],
                suppliers=["S2"],
                locations=[ProductLocation(location_id="L1")],
                requires_quantity=False,
            ),
        ],
    }


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """
    Specifies the asyncio backend for pytest-asyncio.
    """
    return "asyncio"


@pytest_asyncio.fixture(scope="function", autouse=True)
async def initialize_test_db() -> AsyncGenerator[None, None]:
    """
    Initializes the remote store for each test function.

    This async, autouse fixture creates a fresh in-memory database and schema
    for each test and tears it down afterwards.
    """
    await Tortoise.init(config=tortoise_config("sqlite://:memory:"))
    await Tortoise.generate_schemas()

    yield

    await Tortoise.close_connections()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def snapshot() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def ledger(snapshot: MemorySnapshotStore, clock: FrozenClock) -> TombstoneLedger:
    return TombstoneLedger(snapshot, clock=clock)


@pytest.fixture
def store(snapshot: MemorySnapshotStore, ledger: TombstoneLedger) -> StateStore:
    """A store holding the sample catalog and no sessions."""
    state_store = StateStore(snapshot, ledger)
    for collection, items in sample_catalog().items():
        state_store.dispatch(SetCollection(collection=collection, items=items))
    return state_store


@pytest.fixture
def email_settings() -> EmailSettings:
    return EmailSettings(service_id="service_123", template_id="template_456", public_key="public_789")


@pytest.fixture
def settings_repo(snapshot: MemorySnapshotStore) -> EmailSettingsRepository:
    return EmailSettingsRepository(snapshot)


@pytest.fixture
def sync_settings() -> SyncSettings:
    return SyncSettings(retention_days=30, gateway_timeout_seconds=5, auto_sync_enabled=True)


@pytest.fixture
def gateway() -> TortoiseGateway:
    return TortoiseGateway()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def engine(store, gateway, settings_repo, sync_settings, clock) -> ReconciliationEngine:
    return ReconciliationEngine(store, gateway, settings_repo, settings_loader=lambda: sync_settings, clock=clock)


@pytest.fixture
def fake_engine(store, fake_gateway, settings_repo, sync_settings, clock) -> ReconciliationEngine:
    return ReconciliationEngine(store, fake_gateway, settings_repo, settings_loader=lambda: sync_settings, clock=clock)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def container(snapshot, gateway, sender) -> AppContainer:
    """An AppContainer over the test remote, with the sample catalog seeded."""
    app_container = AppContainer(snapshot, gateway=gateway, sender_factory=lambda settings: sender)
    for collection, items in sample_catalog().items():
        app_container.store.dispatch(SetCollection(collection=collection, items=items))
    return app_container


@pytest.fixture(scope="function")
def app_for_testing(container: AppContainer) -> Generator[FastAPI, Any, None]:
    """
    Provides a FastAPI application instance for testing, with its
    production lifespan manager disabled and the test container installed.
    """
    original_lifespan = actual_app.router.lifespan_context

    @asynccontextmanager
    async def dummy_lifespan(app: FastAPI):
        app.state.container = container
        yield

    actual_app.router.lifespan_context = dummy_lifespan

    yield actual_app

    # Restore the original lifespan context after the test
    actual_app.router.lifespan_context = original_lifespan


@pytest.fixture(scope="function")
def client(app_for_testing: FastAPI) -> Generator[TestClient, Any, None]:
    """
    Provides a starlette TestClient.
    """
    with TestClient(app_for_testing) as tc:
        yield tc
