from fastapi import APIRouter, Depends, status
from typing import Annotated, Optional

from ...core.container import AppContainer, get_container
from . import service
from .schemas import InventorySession, ItemUpsertRequest, LastOrderInfo, SessionStartRequest

router = APIRouter(
    prefix="/sessions",
    tags=["Sessions"],
)

Container = Annotated[AppContainer, Depends(get_container)]


@router.post("", response_model=InventorySession, status_code=status.HTTP_201_CREATED)
async def start_session(data: SessionStartRequest, container: Container):
    return service.start_session(container.lifecycle, data)


@router.put("/current/items/{product_id}", response_model=InventorySession)
async def upsert_item(product_id: str, data: ItemUpsertRequest, container: Container):
    return service.update_current_item(container.lifecycle, container.store, product_id, data)


@router.post("/current/submit", response_model=InventorySession)
async def submit_session(container: Container):
    settings = container.email_settings.load()
    return await service.submit_order(container.lifecycle, container.store, settings, container.sender(settings))


@router.post("/current/end", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(container: Container):
    service.end_current_session(container.lifecycle)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, container: Container):
    await service.delete_session(container.store, container.gateway, session_id)


@router.get("/last-order/{product_id}/{location_id}", response_model=Optional[LastOrderInfo])
async def last_order(product_id: str, location_id: str, container: Container):
    return service.last_order(container.store, product_id, location_id)
