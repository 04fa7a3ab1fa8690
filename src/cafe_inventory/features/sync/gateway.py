"""Remote Data Gateway contract.

The reconciliation engine only talks to the remote store through this narrow
capability set, so the backend behind it can be swapped (Tortoise ORM tables
today, anything else that can fetch, upsert and delete by id tomorrow).

Failure semantics:
- ``fetch_all`` / ``fetch_settings`` raise (``ConnectivityError``) on failure.
- ``upsert`` / ``delete`` / ``add_order_history`` / ``upsert_setting`` return
  ``False`` instead of raising.
- Nothing retries internally.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel

from ..counting.schemas import OrderHistoryItem
from ..state.schemas import Collection
from .schemas import load_sync_settings

logger = logging.getLogger(__name__)

# One gateway operation family per replicated collection
EntityType = Collection


class RemoteGateway(Protocol):
    async def test_connection(self) -> bool: ...

    async def fetch_all(self, entity_type: EntityType) -> List[BaseModel]: ...

    async def upsert(self, entity_type: EntityType, entity: BaseModel) -> bool: ...

    async def delete(self, entity_type: EntityType, entity_id: str) -> bool: ...

    async def add_order_history(self, items: Sequence[OrderHistoryItem]) -> bool: ...

    async def fetch_settings(self) -> Dict[str, str]: ...

    async def upsert_setting(self, key: str, value: str) -> bool: ...


async def delete_remote(gateway: Optional[RemoteGateway], entity_type: EntityType, entity_id: str) -> bool:
    """Best-effort remote delete after a local one. Failures are logged, never raised."""
    if gateway is None:
        return False
    timeout = load_sync_settings().gateway_timeout_seconds
    try:
        ok = await asyncio.wait_for(gateway.delete(entity_type, entity_id), timeout=timeout)
    except asyncio.TimeoutError:
        ok = False
    if not ok:
        logger.warning("Remote delete of %s %s failed", entity_type.value, entity_id)
    return ok
