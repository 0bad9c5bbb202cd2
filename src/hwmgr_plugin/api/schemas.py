# src/hwmgr_plugin/api/schemas.py
"""
Pydantic response schemas for the API.
Inventory payloads reuse the models in hwmgr_plugin.models.inventory.
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str = Field(..., description="Health status of the API.")
    version: str = Field(..., description="Current application version.")


class VersionResponse(BaseModel):
    """Response schema for the version endpoint."""

    version: str = Field(..., description="Current application version.")


class ErrorResponse(BaseModel):
    """Problem details returned with any non-200 inventory response."""

    status: int = Field(..., description="HTTP status code.")
    title: str = Field(..., description="Short summary of the problem.")
    detail: str = Field("", description="Explanation specific to this occurrence.")
