# src/hwmgr_plugin/api/routers/inventory.py
"""
API routes for the inventory of a HardwareManager.

The adaptor decides the outcome: 200 with the projected inventory, or 500
and 503 with a problem body. A HardwareManager that does not exist is a 404.
"""

import logging
from http import HTTPStatus
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from hwmgr_plugin.adaptors.registry import AdaptorRegistry
from hwmgr_plugin.api.dependencies import get_adaptor_registry
from hwmgr_plugin.api.schemas import ErrorResponse
from hwmgr_plugin.core.exceptions import NotFoundError, UnknownAdaptorError
from hwmgr_plugin.models.inventory import ResourceInfo, ResourcePoolInfo

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def error_response(status: int, detail: str) -> JSONResponse:
    body = ErrorResponse(status=status, title=HTTPStatus(status).phrase, detail=detail)
    return JSONResponse(status_code=status, content=body.model_dump())


async def _resolve(registry: AdaptorRegistry, hw_mgr_id: str) -> tuple:
    """Returns (hwmgr, None) or (None, error response)."""
    try:
        hwmgr = await registry.get_hardware_manager(hw_mgr_id)
    except NotFoundError:
        return None, error_response(404, f"HardwareManager '{hw_mgr_id}' not found")
    try:
        registry.adaptor_for(hwmgr)
    except UnknownAdaptorError as e:
        return None, error_response(500, str(e))
    return hwmgr, None


def _result(items: list, status: int, error: Optional[Exception], what: str, hw_mgr_id: str):
    if status == 200:
        return items
    logger.error(f"Failed to get {what} for HardwareManager {hw_mgr_id}: {error}")
    return error_response(status, f"failed to get {what}: {error}")


@router.get(
    "/manager/{hwMgrId}/resource-pools",
    response_model=List[ResourcePoolInfo],
    responses=ERROR_RESPONSES,
)
async def get_resource_pools(
    hwMgrId: str,
    registry: AdaptorRegistry = Depends(get_adaptor_registry),
):
    """Return the resource pools known to the HardwareManager's backend."""
    hwmgr, failure = await _resolve(registry, hwMgrId)
    if failure is not None:
        return failure
    pools, status, error = await registry.get_resource_pools(hwmgr)
    return _result(pools, status, error, "resource pools", hwMgrId)


@router.get(
    "/manager/{hwMgrId}/resources",
    response_model=List[ResourceInfo],
    responses=ERROR_RESPONSES,
)
async def get_resources(
    hwMgrId: str,
    registry: AdaptorRegistry = Depends(get_adaptor_registry),
):
    """Return the resources known to the HardwareManager's backend."""
    hwmgr, failure = await _resolve(registry, hwMgrId)
    if failure is not None:
        return failure
    resources, status, error = await registry.get_resources(hwmgr)
    return _result(resources, status, error, "resources", hwMgrId)
