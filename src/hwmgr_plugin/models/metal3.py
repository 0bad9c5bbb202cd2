# src/hwmgr_plugin/models/metal3.py
"""
The subset of the metal3 BareMetalHost resource read by the metal3 adaptor.
Fields not listed here are preserved untouched on update.
"""

from enum import Enum
from typing import ClassVar, List, Optional

from pydantic import Field

from .meta import K8sModel, KubernetesObject


class ProvisioningState(str, Enum):
    NONE = ""
    UNMANAGED = "unmanaged"
    REGISTERING = "registering"
    MATCH_PROFILE = "match profile"
    PREPARING = "preparing"
    READY = "ready"
    AVAILABLE = "available"
    PROVISIONING = "provisioning"
    PROVISIONED = "provisioned"
    EXTERNALLY_PROVISIONED = "externally provisioned"
    DEPROVISIONING = "deprovisioning"
    INSPECTING = "inspecting"
    POWERING_OFF_BEFORE_DELETE = "powering off before delete"
    DELETING = "deleting"


class BMCDetails(K8sModel):
    address: str = ""
    credentials_name: str = ""
    disable_certificate_verification: Optional[bool] = None


class BareMetalHostSpec(K8sModel):
    bmc: BMCDetails = Field(default_factory=BMCDetails)
    boot_mac_address: str = ""
    online: bool = False


class ProvisionStatus(K8sModel):
    state: str = ""


class CPU(K8sModel):
    arch: str = ""
    model: str = ""
    count: int = 0


class NIC(K8sModel):
    name: str = ""
    mac: str = ""
    speed_gbps: int = 0


class HardwareSystemVendor(K8sModel):
    manufacturer: str = ""
    product_name: str = ""
    serial_number: str = ""


class HardwareDetails(K8sModel):
    system_vendor: HardwareSystemVendor = Field(default_factory=HardwareSystemVendor)
    ram_mebibytes: int = Field(0, alias="ramMebibytes")
    nics: List[NIC] = Field(default_factory=list)
    cpu: CPU = Field(default_factory=CPU)
    hostname: str = ""


class BareMetalHostStatus(K8sModel):
    operational_status: str = ""
    error_type: str = ""
    error_message: str = ""
    powered_on: bool = False
    provisioning: ProvisionStatus = Field(default_factory=ProvisionStatus)
    hardware_details: Optional[HardwareDetails] = None


class BareMetalHost(KubernetesObject):
    API_GROUP: ClassVar[str] = "metal3.io"
    API_VERSION: ClassVar[str] = "v1alpha1"
    KIND: ClassVar[str] = "BareMetalHost"
    PLURAL: ClassVar[str] = "baremetalhosts"

    spec: BareMetalHostSpec = Field(default_factory=BareMetalHostSpec)
    status: BareMetalHostStatus = Field(default_factory=BareMetalHostStatus)
