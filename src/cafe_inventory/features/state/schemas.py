from enum import Enum
from typing import Dict, List, Optional, Type

from pydantic import BaseModel, Field

from ..catalog.schemas import Category, Location, Product, Supplier
from ..counting.schemas import InventorySession, OrderHistoryItem


class Collection(str, Enum):
    """Top-level dataset collections. Values double as snapshot keys."""

    LOCATIONS = "locations"
    CATEGORIES = "categories"
    SUPPLIERS = "suppliers"
    PRODUCTS = "products"
    SESSIONS = "sessions"
    ORDER_HISTORY = "order-history"

    @property
    def field(self) -> str:
        return self.value.replace("-", "_")

    @property
    def entity_type(self) -> Type[BaseModel]:
        return COLLECTION_TYPES[self]


COLLECTION_TYPES: Dict[Collection, Type[BaseModel]] = {
    Collection.LOCATIONS: Location,
    Collection.CATEGORIES: Category,
    Collection.SUPPLIERS: Supplier,
    Collection.PRODUCTS: Product,
    Collection.SESSIONS: InventorySession,
    Collection.ORDER_HISTORY: OrderHistoryItem,
}


class Dataset(BaseModel):
    """The six replicated collections, as exchanged with the remote store."""

    locations: List[Location] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    suppliers: List[Supplier] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    sessions: List[InventorySession] = Field(default_factory=list)
    order_history: List[OrderHistoryItem] = Field(default_factory=list)

    def collection(self, collection: Collection) -> list:
        return getattr(self, collection.field)

    def counts(self) -> Dict[str, int]:
        return {c.value: len(self.collection(c)) for c in Collection}


class AppState(Dataset):
    """Root aggregate: the dataset plus the session being counted right now."""

    current_session: Optional[InventorySession] = None

    @property
    def has_active_draft(self) -> bool:
        return self.current_session is not None and not self.current_session.is_submitted

    def dataset(self) -> Dataset:
        return Dataset(**{c.field: list(self.collection(c)) for c in Collection})
