# src/hwmgr_plugin/api/routers/health.py
"""
API routes for health and version information.
"""

from fastapi import APIRouter

from hwmgr_plugin import __version__
from hwmgr_plugin.api.schemas import HealthResponse, VersionResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="ok", version=__version__)


@router.get("/version", response_model=VersionResponse)
async def version():
    """Return the current application version."""
    return VersionResponse(version=__version__)
