"""Mutation intents accepted by the application state store.

The presentation layer, the session lifecycle manager and the reconciliation
engine never touch AppState directly; they dispatch one of these.
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from ..counting.schemas import InventorySession, OrderHistoryItem
from .schemas import Collection, Dataset


class _Intent(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetCollection(_Intent):
    collection: Collection
    items: List[Any]


class AddEntity(_Intent):
    collection: Collection
    entity: Any


class UpdateEntity(_Intent):
    collection: Collection
    entity: Any


class DeleteEntity(_Intent):
    collection: Collection
    entity_id: str


class SetCurrentSession(_Intent):
    session: Optional[InventorySession] = None


class UpdateSession(_Intent):
    session: InventorySession


class AddOrderHistory(_Intent):
    items: List[OrderHistoryItem]


class ReplaceDataset(_Intent):
    """Publish a fully reconciled dataset in one step."""

    dataset: Dataset


Action = Union[
    SetCollection,
    AddEntity,
    UpdateEntity,
    DeleteEntity,
    SetCurrentSession,
    UpdateSession,
    AddOrderHistory,
    ReplaceDataset,
]
