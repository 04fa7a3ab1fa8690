import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from tortoise import Tortoise
from tortoise.contrib.fastapi import tortoise_exception_handlers

from .common.errors import ConfigurationError, ConnectivityError, NotFoundError, ValidationError
from .common.snapshot import FileSnapshotStore
from .core import config
from .core import logging_config  # noqa: F401  (configures the 'cafe_inventory' logger)
from .core.container import AppContainer
from .features.catalog.router import router as catalog_router
from .features.counting.router import router as sessions_router
from .features.notifications.router import router as settings_router
from .features.state.router import router as state_router
from .features.sync.remote import TortoiseGateway
from .features.sync.router import router as sync_router

logger = logging.getLogger("cafe_inventory.main")  # This logger will inherit from 'cafe_inventory'


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Connects to the remote store when one is configured, restores the local
    snapshot, runs one auto-sync and starts the periodic scheduler.
    """
    logger.info("Starting application...")
    gateway = None
    if config.REMOTE_DATABASE_URL:
        await Tortoise.init(config=config.tortoise_config())
        gateway = TortoiseGateway()
        logger.info("Tortoise-ORM has been initialized.")
    else:
        logger.info("No remote store configured; running local-only.")

    container = AppContainer(
        FileSnapshotStore(config.SNAPSHOT_DIR),
        gateway=gateway,
        seed_defaults=config.SEED_DEFAULT_CATALOG,
    )
    app.state.container = container

    await container.engine.auto_sync("startup")
    container.scheduler.start()

    yield

    await container.scheduler.stop()
    if gateway is not None:
        await Tortoise.close_connections()
        logger.info("Tortoise-ORM connections have been closed.")


def _error_response(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


exception_handlers = {
    **tortoise_exception_handlers(),
    NotFoundError: _error_response(status.HTTP_404_NOT_FOUND),
    ValidationError: _error_response(status.HTTP_400_BAD_REQUEST),
    ConfigurationError: _error_response(status.HTTP_400_BAD_REQUEST),
    ConnectivityError: _error_response(status.HTTP_502_BAD_GATEWAY),
}

app = FastAPI(
    title="Cafe Inventory API",
    description="API for inventory counting sessions and local/remote sync.",
    version="0.1.0",
    exception_handlers=exception_handlers,
    lifespan=lifespan,
)


@app.get("/")
async def read_root(request: Request):
    """
    Root endpoint for the API.
    """
    client_host = request.client.host if request.client else "unknown client"
    logger.info(f"Root endpoint '/' accessed by {client_host}")
    return {"message": "Welcome to the Cafe Inventory API!"}


# Include your routers
app.include_router(state_router, prefix="/api/v1")
app.include_router(catalog_router, prefix="/api/v1")
app.include_router(sessions_router, prefix="/api/v1")
app.include_router(sync_router, prefix="/api/v1")
app.include_router(settings_router, prefix="/api/v1")
