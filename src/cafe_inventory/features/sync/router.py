from fastapi import APIRouter, Depends, Response, status
from typing import Annotated, Optional

from ...core.container import AppContainer, get_container
from .schemas import FailureKind, SyncResult, SyncStatus

router = APIRouter(
    prefix="/sync",
    tags=["Sync"],
)

Container = Annotated[AppContainer, Depends(get_container)]


def _status_code(result: SyncResult) -> int:
    if result.ok:
        return status.HTTP_200_OK
    if result.failure is FailureKind.CONFIGURATION:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_502_BAD_GATEWAY


@router.post("", response_model=SyncResult)
async def sync_now(container: Container, response: Response):
    """Push local changes, then pull the remote dataset."""
    result = await container.engine.reconcile(pull_first=False)
    response.status_code = _status_code(result)
    return result


@router.post("/pull", response_model=SyncResult)
async def pull_latest(container: Container, response: Response):
    """Pull the remote dataset without uploading local changes."""
    result = await container.engine.reconcile(pull_first=True)
    response.status_code = _status_code(result)
    return result


@router.post("/foreground", response_model=Optional[SyncResult])
async def on_foreground(container: Container):
    """Called when the client regains focus. Returns null when the sync was skipped."""
    return await container.scheduler.on_foreground()


@router.get("/status", response_model=SyncStatus)
async def sync_status(container: Container):
    return container.engine.status
