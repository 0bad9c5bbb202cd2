# src/hwmgr_plugin/models/inventory.py
"""
Generic inventory schema returned to the inventory query service.

Every adaptor projects its backend-native resources onto these models.
Fields a backend cannot supply are reported as UNKNOWN enum values or
empty strings, never null where a string is expected.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AdminState(str, Enum):
    LOCKED = "LOCKED"
    SHUTTINGDOWN = "SHUTTINGDOWN"
    UNLOCKED = "UNLOCKED"
    UNKNOWN = "UNKNOWN"


class OperationalState(str, Enum):
    DISABLED = "DISABLED"
    ENABLED = "ENABLED"
    UNKNOWN = "UNKNOWN"


class PowerState(str, Enum):
    ON = "ON"
    OFF = "OFF"
    UNKNOWN = "UNKNOWN"


class UsageState(str, Enum):
    ACTIVE = "ACTIVE"
    BUSY = "BUSY"
    IDLE = "IDLE"
    UNKNOWN = "UNKNOWN"


class _InventoryModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ProcessorInfo(_InventoryModel):
    architecture: Optional[str] = Field(None, description="CPU architecture")
    cores: Optional[int] = Field(None, description="Number of cores")
    manufacturer: Optional[str] = Field(None, description="CPU manufacturer")
    model: Optional[str] = Field(None, description="CPU model")


class ResourcePoolInfo(_InventoryModel):
    resource_pool_id: str = Field(..., description="Resource pool identifier")
    name: str = Field(..., description="Resource pool name")
    description: str = Field("", description="Resource pool description")
    site_id: Optional[str] = Field(None, description="Site the pool belongs to")


class ResourceInfo(_InventoryModel):
    resource_id: str = Field(..., description="Backend-unique resource identifier")
    resource_pool_id: str = Field(..., description="Resource pool the resource belongs to")
    name: str = Field(..., description="Resource name")
    description: str = Field("", description="Resource description")
    admin_state: AdminState = AdminState.UNKNOWN
    operational_state: OperationalState = OperationalState.UNKNOWN
    power_state: Optional[PowerState] = None
    usage_state: UsageState = UsageState.UNKNOWN
    global_asset_id: Optional[str] = None
    groups: Optional[List[str]] = None
    hw_profile: str = ""
    labels: Optional[Dict[str, str]] = None
    memory: int = Field(0, description="Memory in MiB")
    model: str = ""
    part_number: str = ""
    processors: List[ProcessorInfo] = Field(default_factory=list)
    serial_number: str = ""
    tags: Optional[List[str]] = None
    vendor: str = ""
