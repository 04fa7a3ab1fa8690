from fastapi import APIRouter, Depends
from typing import Annotated

from ...core.container import AppContainer, get_container
from .schemas import AppState

router = APIRouter(
    prefix="/state",
    tags=["State"],
)


@router.get("", response_model=AppState)
async def read_state(container: Annotated[AppContainer, Depends(get_container)]):
    """The full dataset plus the session being counted."""
    return container.store.state
