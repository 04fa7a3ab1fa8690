"""
Tortoise ORM implementation of the Remote Data Gateway.

Each replicated collection lives in its own table keyed by the client-assigned
id. List-valued attributes (product categories, suppliers and availability,
session items, history supplier names) are JSON columns, so a row maps to the
local pydantic entity one-to-one.

Tortoise must be initialised (``Tortoise.init``) before any call; the FastAPI
lifespan and the CLI take care of that.
"""

import logging
from typing import Awaitable, Callable, Dict, List, Sequence, Type

from pydantic import BaseModel
from tortoise import connections
from tortoise.exceptions import BaseORMException
from tortoise.models import Model

from ...common.errors import ConnectivityError
from ..catalog.models import DEFAULT_CATEGORY_COLOR, CategoryRecord, LocationRecord, ProductRecord, SupplierRecord
from ..counting.models import OrderHistoryRecord, SessionRecord
from ..counting.schemas import OrderHistoryItem
from .gateway import EntityType
from .models import AppSettingRecord

logger = logging.getLogger(__name__)

# Errors the ORM or the driver underneath it raise when the store is unreachable or rejects a query
REMOTE_ERRORS = (BaseORMException, OSError)

RECORDS: Dict[EntityType, Type[Model]] = {
    EntityType.LOCATIONS: LocationRecord,
    EntityType.CATEGORIES: CategoryRecord,
    EntityType.SUPPLIERS: SupplierRecord,
    EntityType.PRODUCTS: ProductRecord,
    EntityType.SESSIONS: SessionRecord,
    EntityType.ORDER_HISTORY: OrderHistoryRecord,
}

# Natural display order of each collection
ORDERING: Dict[EntityType, str] = {
    EntityType.LOCATIONS: "name",
    EntityType.CATEGORIES: "name",
    EntityType.SUPPLIERS: "name",
    EntityType.PRODUCTS: "name",
    EntityType.SESSIONS: "-start_date",
    EntityType.ORDER_HISTORY: "-order_date",
}

JSON_COLUMNS: Dict[EntityType, tuple] = {
    EntityType.PRODUCTS: ("categories", "suppliers", "locations"),
    EntityType.SESSIONS: ("items",),
    EntityType.ORDER_HISTORY: ("suppliers", "category_ids"),
}


def _row_values(entity_type: EntityType, entity: BaseModel) -> dict:
    values = entity.model_dump(exclude={"id"})
    json_values = entity.model_dump(mode="json", exclude={"id"})
    for column in JSON_COLUMNS.get(entity_type, ()):
        values[column] = json_values[column]
    if entity_type is EntityType.CATEGORIES and values.get("color") is None:
        values["color"] = DEFAULT_CATEGORY_COLOR
    return values


def _row_id(entity_type: EntityType, entity: BaseModel) -> str:
    if entity_type is EntityType.ORDER_HISTORY:
        return entity.record_id
    return entity.id


class TortoiseGateway:
    async def test_connection(self) -> bool:
        try:
            await connections.get("default").execute_query("SELECT 1")
        except REMOTE_ERRORS as e:
            logger.error(f"Remote store connection test failed: {e}")
            return False
        return True

    async def fetch_all(self, entity_type: EntityType) -> List[BaseModel]:
        record_cls = RECORDS[entity_type]
        try:
            records = await record_cls.all().order_by(ORDERING[entity_type])
        except REMOTE_ERRORS as e:
            raise ConnectivityError(f"Failed to fetch {entity_type.value}: {e}") from e
        model = entity_type.entity_type
        return [model.model_validate(record) for record in records]

    async def upsert(self, entity_type: EntityType, entity: BaseModel) -> bool:
        record_cls = RECORDS[entity_type]
        entity_id = _row_id(entity_type, entity)
        try:
            await record_cls.update_or_create(id=entity_id, defaults=_row_values(entity_type, entity))
        except REMOTE_ERRORS as e:
            logger.error(f"Failed to upsert {entity_type.value} {entity_id}: {e}")
            return False
        return True

    async def add_order_history(self, items: Sequence[OrderHistoryItem]) -> bool:
        """Insert history rows, ignoring rows that were pushed before."""
        if not items:
            return True
        rows = [
            OrderHistoryRecord(id=item.record_id, **_row_values(EntityType.ORDER_HISTORY, item))
            for item in items
        ]
        try:
            await OrderHistoryRecord.bulk_create(rows, ignore_conflicts=True)
        except REMOTE_ERRORS as e:
            logger.error(f"Failed to insert {len(rows)} order history row(s): {e}")
            return False
        return True

    async def delete(self, entity_type: EntityType, entity_id: str) -> bool:
        """Delete a row after clearing references to it.

        Every step runs even when an earlier one fails, so a dangling reference
        never leaves the row undeletable. Returns True only if all steps worked.
        """
        steps: List[Callable[[], Awaitable[None]]] = []
        if entity_type is EntityType.CATEGORIES:
            steps += [
                lambda: self._strip_from_json(ProductRecord, "categories", entity_id),
                lambda: self._strip_from_json(OrderHistoryRecord, "category_ids", entity_id),
            ]
        elif entity_type is EntityType.SUPPLIERS:
            steps.append(lambda: self._strip_from_json(ProductRecord, "suppliers", entity_id))
        elif entity_type is EntityType.PRODUCTS:
            steps += [
                lambda: self._strip_session_items(entity_id),
                lambda: OrderHistoryRecord.filter(product_id=entity_id).delete(),
            ]
        elif entity_type is EntityType.SESSIONS:
            steps.append(lambda: OrderHistoryRecord.filter(session_id=entity_id).delete())
        steps.append(lambda: RECORDS[entity_type].filter(id=entity_id).delete())

        ok = True
        for step in steps:
            try:
                await step()
            except REMOTE_ERRORS as e:
                logger.error(f"Delete step for {entity_type.value} {entity_id} failed: {e}")
                ok = False
        return ok

    @staticmethod
    async def _strip_from_json(record_cls: Type[Model], column: str, value: str) -> None:
        for record in await record_cls.all():
            ids = getattr(record, column) or []
            if value in ids:
                setattr(record, column, [i for i in ids if i != value])
                await record.save(update_fields=[column])

    @staticmethod
    async def _strip_session_items(product_id: str) -> None:
        for record in await SessionRecord.all():
            items = record.items or []
            kept = [item for item in items if item.get("product_id") != product_id]
            if len(kept) != len(items):
                record.items = kept
                await record.save(update_fields=["items"])

    async def fetch_settings(self) -> Dict[str, str]:
        try:
            records = await AppSettingRecord.all()
        except REMOTE_ERRORS as e:
            raise ConnectivityError(f"Failed to fetch settings: {e}") from e
        return {record.key: record.value for record in records}

    async def upsert_setting(self, key: str, value: str) -> bool:
        try:
            await AppSettingRecord.update_or_create(key=key, defaults={"value": value})
        except REMOTE_ERRORS as e:
            logger.error(f"Failed to save setting {key}: {e}")
            return False
        return True
