from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
import datetime


# --- Session Schemas ---
class InventoryItem(BaseModel):
    product_id: str
    location_id: str
    current_quantity: Optional[int] = Field(None, ge=0, description="Only for quantity-tracked products")
    should_order: bool = False
    last_order_date: Optional[datetime.datetime] = None


class InventorySession(BaseModel):
    id: str
    location_id: str
    user_name: str
    start_date: datetime.datetime
    end_date: Optional[datetime.datetime] = Field(None, description="Set once, on submission")
    items: List[InventoryItem] = Field(default_factory=list)
    is_submitted: bool = False

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_draft(self) -> bool:
        return not self.is_submitted

    def item_for(self, product_id: str) -> Optional[InventoryItem]:
        return next((item for item in self.items if item.product_id == product_id), None)

    def items_to_order(self) -> List[InventoryItem]:
        return [item for item in self.items if item.should_order]


# --- Order Schemas ---
class OrderHistoryItem(BaseModel):
    product_id: str
    location_id: str
    order_date: datetime.datetime
    quantity_ordered: Optional[int] = None
    session_id: str
    suppliers: List[str] = Field(default_factory=list, description="Supplier display names at submission time")
    category_ids: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @property
    def record_id(self) -> str:
        return f"{self.session_id}-{self.product_id}"


class OrderLine(BaseModel):
    product_name: str
    quantity: Optional[int] = None
    suppliers: List[str]


class OrderSummary(BaseModel):
    session_id: str
    location_name: str
    user_name: str
    order_date: datetime.datetime
    items: List[OrderLine]


class SubmissionResult(BaseModel):
    order_summary: OrderSummary
    history_items: List[OrderHistoryItem]
    submitted_session: InventorySession


class LastOrderInfo(BaseModel):
    date: datetime.datetime
    quantity: Optional[int] = None


# --- Request payloads ---
class SessionStartRequest(BaseModel):
    location_id: str = Field(..., description="Id of a known location")
    user_name: str = Field(..., max_length=255)


class ItemUpsertRequest(BaseModel):
    current_quantity: Optional[int] = Field(None, description="Negative counts are clamped to zero")
    should_order: Optional[bool] = Field(None, description="Omit to keep the item's current flag")
