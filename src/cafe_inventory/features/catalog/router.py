from fastapi import APIRouter, Depends, status
from typing import Annotated

from ...core.container import AppContainer, get_container
from . import service
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

router = APIRouter(
    prefix="/catalog",
    tags=["Catalog"],
)

Container = Annotated[AppContainer, Depends(get_container)]


# --- Locations ---
@router.post("/locations", response_model=Location, status_code=status.HTTP_201_CREATED)
async def create_location(data: LocationCreate, container: Container):
    return service.create_location(container.store, data)


@router.put("/locations/{location_id}", response_model=Location)
async def update_location(location_id: str, data: LocationUpdate, container: Container):
    return service.update_location(container.store, location_id, data)


@router.delete("/locations/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_location(location_id: str, container: Container):
    await service.delete_location(container.store, container.gateway, location_id)


# --- Categories ---
@router.post("/categories", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(data: CategoryCreate, container: Container):
    return service.create_category(container.store, data)


@router.put("/categories/{category_id}", response_model=Category)
async def update_category(category_id: str, data: CategoryUpdate, container: Container):
    return service.update_category(container.store, category_id, data)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: str, container: Container):
    await service.delete_category(container.store, container.gateway, category_id)


# --- Suppliers ---
@router.post("/suppliers", response_model=Supplier, status_code=status.HTTP_201_CREATED)
async def create_supplier(data: SupplierCreate, container: Container):
    return service.create_supplier(container.store, data)


@router.put("/suppliers/{supplier_id}", response_model=Supplier)
async def update_supplier(supplier_id: str, data: SupplierUpdate, container: Container):
    return service.update_supplier(container.store, supplier_id, data)


@router.delete("/suppliers/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_supplier(supplier_id: str, container: Container):
    await service.delete_supplier(container.store, container.gateway, supplier_id)


# --- Products ---
@router.post("/products", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate, container: Container):
    return service.create_product(container.store, data)


@router.put("/products/{product_id}", response_model=Product)
async def update_product(product_id: str, data: ProductUpdate, container: Container):
    return service.update_product(container.store, product_id, data)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: str, container: Container):
    await service.delete_product(container.store, container.gateway, product_id)
