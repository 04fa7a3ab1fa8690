from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional


def _unique_in_order(ids: List[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def _reject_duplicates(ids: Optional[List[str]]) -> Optional[List[str]]:
    if ids is not None and len(set(ids)) != len(ids):
        raise ValueError("duplicate ids are not allowed")
    return ids


# --- Domain entities ---
class Location(BaseModel):
    id: str = Field(..., description="Stable location id")
    name: str
    address: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class Category(BaseModel):
    id: str
    name: str
    color: Optional[str] = Field(None, description="Display color, e.g. '#E3F2FD'")

    model_config = ConfigDict(from_attributes=True)


class Supplier(BaseModel):
    id: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class ProductLocation(BaseModel):
    location_id: str
    min_threshold: Optional[int] = Field(
        None, ge=0, description="Only meaningful when the product requires a quantity"
    )
    is_available: bool = True


class Product(BaseModel):
    id: str
    name: str
    categories: List[str] = Field(default_factory=list, description="Category ids")
    suppliers: List[str] = Field(default_factory=list, description="Supplier ids")
    locations: List[ProductLocation] = Field(default_factory=list)
    requires_quantity: bool = Field(
        False, description="True for threshold tracking, False for order checkbox only"
    )

    model_config = ConfigDict(from_attributes=True)

    @field_validator("categories", "suppliers")
    @classmethod
    def _dedupe(cls, ids: List[str]) -> List[str]:
        return _unique_in_order(ids)

    def location_entry(self, location_id: str) -> Optional[ProductLocation]:
        return next((loc for loc in self.locations if loc.location_id == location_id), None)

    def is_available_at(self, location_id: str) -> bool:
        entry = self.location_entry(location_id)
        return bool(entry and entry.is_available)

    def min_threshold_at(self, location_id: str) -> int:
        entry = self.location_entry(location_id)
        return entry.min_threshold if entry and entry.min_threshold is not None else 0


# --- Request payloads ---
class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = Field(None, max_length=500)


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, max_length=500)


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = Field(None, max_length=32)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = Field(None, max_length=32)


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    categories: List[str] = Field(default_factory=list)
    suppliers: List[str] = Field(default_factory=list)
    locations: List[ProductLocation] = Field(default_factory=list)
    requires_quantity: bool = False

    @field_validator("categories", "suppliers")
    @classmethod
    def _no_duplicates(cls, ids):
        return _reject_duplicates(ids)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    categories: Optional[List[str]] = None
    suppliers: Optional[List[str]] = None
    locations: Optional[List[ProductLocation]] = None
    requires_quantity: Optional[bool] = None

    @field_validator("categories", "suppliers")
    @classmethod
    def _no_duplicates(cls, ids):
        return _reject_duplicates(ids)
