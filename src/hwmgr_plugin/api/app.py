# src/hwmgr_plugin/api/app.py
"""
FastAPI application factory for the hardware inventory API.

Uses the factory pattern so the app can be created with or without
lifespan management (e.g., tests skip store and adaptor cleanup).
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hwmgr_plugin import __version__
from hwmgr_plugin.api.routers import health, inventory
from hwmgr_plugin.core.config import config

logger = logging.getLogger(__name__)

INVENTORY_PREFIX = "/hardware-manager/inventory/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    logger.info("Starting hardware inventory API...")
    yield
    logger.info("Shutting down hardware inventory API...")
    from hwmgr_plugin.core.factory import get_adaptor_registry, get_store

    await get_adaptor_registry().close()
    await get_store().close()
    logger.info("Adaptor and store connections closed.")


def create_app(use_lifespan: bool = False) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        use_lifespan: If True, attach the lifespan handler that closes the
                      store and adaptor clients on shutdown. Set to False for testing.

    Returns:
        A configured FastAPI application instance.
    """
    app = FastAPI(
        title="Hardware Manager Plugin Inventory API",
        description="Resource pools and resources exposed by the configured hardware managers.",
        version=__version__,
        docs_url=f"{INVENTORY_PREFIX}/docs",
        openapi_url=f"{INVENTORY_PREFIX}/openapi.json",
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(inventory.router, prefix=INVENTORY_PREFIX, tags=["Inventory"])
    app.include_router(health.router, prefix=INVENTORY_PREFIX, tags=["Health"])

    return app


def main():
    """Entry point for the hwmgr-plugin-api console script."""
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    app = create_app(use_lifespan=True)
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
