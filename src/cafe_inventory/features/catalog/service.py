import logging
from typing import Iterable, Optional

import pydantic
from pydantic import BaseModel

from ...common.errors import ValidationError
from ...common.models import generate_ksuid
from ..state.actions import AddEntity, DeleteEntity, UpdateEntity
from ..state.schemas import Collection
from ..state.store import StateStore
from ..sync.gateway import RemoteGateway, delete_remote
from .schemas import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    Location,
    LocationCreate,
    LocationUpdate,
    Product,
    ProductCreate,
    ProductUpdate,
    Supplier,
    SupplierCreate,
    SupplierUpdate,
)

logger = logging.getLogger(__name__)


def _check_references(store: StateStore, collection: Collection, ids: Iterable[str]) -> None:
    missing = [i for i in ids if store.find(collection, i) is None]
    if missing:
        raise ValidationError(f"Unknown {collection.value}: {', '.join(missing)}")


def _check_product_references(store: StateStore, product: Product) -> None:
    _check_references(store, Collection.CATEGORIES, product.categories)
    _check_references(store, Collection.SUPPLIERS, product.suppliers)
    _check_references(store, Collection.LOCATIONS, [loc.location_id for loc in product.locations])


def _create(store: StateStore, collection: Collection, data: BaseModel):
    entity = collection.entity_type(id=generate_ksuid(), **data.model_dump())
    if collection is Collection.PRODUCTS:
        _check_product_references(store, entity)
    store.dispatch(AddEntity(collection=collection, entity=entity))
    logger.info("Created %s %s (%s)", collection.entity_type.__name__, entity.id, entity.name)
    return entity


def _update(store: StateStore, collection: Collection, entity_id: str, data: BaseModel):
    existing = store.get(collection, entity_id)
    try:
        entity = collection.entity_type.model_validate(
            {**existing.model_dump(), **data.model_dump(exclude_unset=True)}
        )
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e
    if collection is Collection.PRODUCTS:
        _check_product_references(store, entity)
    store.dispatch(UpdateEntity(collection=collection, entity=entity))
    return entity


async def _delete(store: StateStore, gateway: Optional[RemoteGateway], collection: Collection, entity_id: str) -> None:
    """Delete locally first; the remote delete is best-effort and never reverts the local one."""
    store.get(collection, entity_id)
    store.dispatch(DeleteEntity(collection=collection, entity_id=entity_id))
    logger.info("Deleted %s %s", collection.entity_type.__name__, entity_id)
    await delete_remote(gateway, collection, entity_id)


# --- Locations ---
def create_location(store: StateStore, data: LocationCreate) -> Location:
    return _create(store, Collection.LOCATIONS, data)


def update_location(store: StateStore, location_id: str, data: LocationUpdate) -> Location:
    return _update(store, Collection.LOCATIONS, location_id, data)


async def delete_location(store: StateStore, gateway: Optional[RemoteGateway], location_id: str) -> None:
    await _delete(store, gateway, Collection.LOCATIONS, location_id)


# --- Categories ---
def create_category(store: StateStore, data: CategoryCreate) -> Category:
    return _create(store, Collection.CATEGORIES, data)


def update_category(store: StateStore, category_id: str, data: CategoryUpdate) -> Category:
    return _update(store, Collection.CATEGORIES, category_id, data)


async def delete_category(store: StateStore, gateway: Optional[RemoteGateway], category_id: str) -> None:
    """Also strips the category from every product that references it."""
    await _delete(store, gateway, Collection.CATEGORIES, category_id)


# --- Suppliers ---
def create_supplier(store: StateStore, data: SupplierCreate) -> Supplier:
    return _create(store, Collection.SUPPLIERS, data)


def update_supplier(store: StateStore, supplier_id: str, data: SupplierUpdate) -> Supplier:
    return _update(store, Collection.SUPPLIERS, supplier_id, data)


async def delete_supplier(store: StateStore, gateway: Optional[RemoteGateway], supplier_id: str) -> None:
    await _delete(store, gateway, Collection.SUPPLIERS, supplier_id)


# --- Products ---
def create_product(store: StateStore, data: ProductCreate) -> Product:
    return _create(store, Collection.PRODUCTS, data)


def update_product(store: StateStore, product_id: str, data: ProductUpdate) -> Product:
    return _update(store, Collection.PRODUCTS, product_id, data)


async def delete_product(store: StateStore, gateway: Optional[RemoteGateway], product_id: str) -> None:
    """Also removes the product's item from the session being counted."""
    await _delete(store, gateway, Collection.PRODUCTS, product_id)
