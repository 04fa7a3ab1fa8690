import pydantic
import pytest
from fastapi.testclient import TestClient

from cafe_inventory.common.errors import NotFoundError, ValidationError
from cafe_inventory.core.container import AppContainer
from cafe_inventory.features.catalog import service
from cafe_inventory.features.catalog.models import CategoryRecord, ProductRecord
from cafe_inventory.features.catalog.schemas import (
    CategoryCreate,
    LocationUpdate,
    ProductCreate,
    ProductLocation,
    ProductUpdate,
    SupplierCreate,
)
from cafe_inventory.features.state.schemas import Collection
from cafe_inventory.features.state.store import StateStore
from cafe_inventory.features.state.tombstones import TombstoneKind


def test_create_category_assigns_id(store: StateStore):
    """Test creating a category."""
    category = service.create_category(store, CategoryCreate(name="Bakery", color="#FFFDE7"))

    assert category.id
    assert store.get(Collection.CATEGORIES, category.id) == category


def test_create_product_checks_references(store: StateStore):
    data = ProductCreate(
        name="Oat Milk",
        categories=["C1"],
        suppliers=["S9"],
        locations=[ProductLocation(location_id="L1", min_threshold=4)],
        requires_quantity=True,
    )
    with pytest.raises(ValidationError):
        service.create_product(store, data)
    assert all(p.name != "Oat Milk" for p in store.state.products)


def test_create_product(store: StateStore):
    data = ProductCreate(
        name="Oat Milk",
        categories=["C1"],
        suppliers=["S2"],
        locations=[ProductLocation(location_id="L1", min_threshold=4)],
        requires_quantity=True,
    )
    product = service.create_product(store, data)

    assert product.min_threshold_at("L1") == 4
    assert store.find(Collection.PRODUCTS, product.id) is not None


def test_product_payload_rejects_duplicate_ids():
    with pytest.raises(pydantic.ValidationError):
        ProductCreate(name="Dup", categories=["C1", "C1"])


def test_update_location(store: StateStore):
    """Test updating a location only changes the fields that were sent."""
    updated = service.update_location(store, "L1", LocationUpdate(name="Downtown East"))

    assert updated.name == "Downtown East"
    assert updated.address == "1 Main St"


def test_update_product_partial(store: StateStore):
    updated = service.update_product(store, "P1", ProductUpdate(suppliers=["S2"]))

    assert updated.suppliers == ["S2"]
    assert updated.categories == ["C1"]
    assert updated.requires_quantity is True


def test_update_not_found(store: StateStore):
    with pytest.raises(NotFoundError):
        service.update_location(store, "missing", LocationUpdate(name="X"))


@pytest.mark.asyncio
async def test_delete_category_cascades_locally_and_remotely(container: AppContainer):
    gateway = container.gateway
    for product in container.store.state.products:
        await gateway.upsert(Collection.PRODUCTS, product)
    for category in container.store.state.categories:
        await gateway.upsert(Collection.CATEGORIES, category)

    await service.delete_category(container.store, gateway, "C2")

    assert container.store.find(Collection.CATEGORIES, "C2") is None
    assert all("C2" not in p.categories for p in container.store.state.products)
    assert container.ledger.is_deleted(TombstoneKind.CATEGORIES, "C2")
    assert await CategoryRecord.filter(id="C2").count() == 0
    beans = await ProductRecord.get(id="P3")
    assert beans.categories == []


@pytest.mark.asyncio
async def test_delete_is_local_first_when_remote_fails(store: StateStore, fake_gateway):
    """A failing remote delete never reverts the local one."""
    await service.delete_supplier(store, fake_gateway, "S1")

    assert fake_gateway.calls == ["delete:suppliers:S1"]
    assert store.find(Collection.SUPPLIERS, "S1") is None


@pytest.mark.asyncio
async def test_delete_without_remote(store: StateStore):
    await service.delete_product(store, None, "P4")

    assert store.find(Collection.PRODUCTS, "P4") is None


def test_catalog_routes(client: TestClient, container: AppContainer):
    response = client.post("/api/v1/catalog/suppliers", json={"name": "Shoreline"})
    assert response.status_code == 201, response.text
    supplier_id = response.json()["id"]

    response = client.put(f"/api/v1/catalog/suppliers/{supplier_id}", json={"name": "Shoreline Co"})
    assert response.status_code == 200
    assert response.json()["name"] == "Shoreline Co"

    response = client.post(
        "/api/v1/catalog/products",
        json={
            "name": "Napkins",
            "suppliers": [supplier_id],
            "locations": [{"location_id": "L2"}],
        },
    )
    assert response.status_code == 201, response.text
    assert response.json()["requires_quantity"] is False

    response = client.delete(f"/api/v1/catalog/suppliers/{supplier_id}")
    assert response.status_code == 204
    names = [p["name"] for p in client.get("/api/v1/state").json()["products"] if not p["suppliers"]]
    assert names == ["Napkins"]


def test_catalog_route_errors(client: TestClient):
    assert client.delete("/api/v1/catalog/categories/nope").status_code == 404
    assert client.put("/api/v1/catalog/locations/nope", json={"name": "X"}).status_code == 404

    response = client.post("/api/v1/catalog/products", json={"name": "Dup", "categories": ["C1", "C1"]})
    assert response.status_code == 422

    response = client.post("/api/v1/catalog/products", json={"name": "Ghost", "categories": ["C404"]})
    assert response.status_code == 400


def test_create_supplier_then_list(store: StateStore):
    supplier = service.create_supplier(store, SupplierCreate(name="Trader Joes"))
    assert [s.name for s in store.state.suppliers][-1] == supplier.name
