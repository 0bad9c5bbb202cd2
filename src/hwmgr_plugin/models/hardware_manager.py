# src/hwmgr_plugin/models/hardware_manager.py

from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import Field

from .conditions import Condition
from .meta import K8sModel, KubernetesObject

PLUGIN_GROUP = "hwmgr-plugin.oran.openshift.io"
PLUGIN_VERSION = "v1alpha1"


class AdaptorID(str, Enum):
    LOOPBACK = "loopback"
    DELL = "dell-hwmgr"
    METAL3 = "metal3"


class DellData(K8sModel):
    """Connection details for the vendor hardware manager REST API."""

    api_url: str = ""
    auth_client_secret: str = ""
    tenant: str = "default_tenant"
    insecure_skip_tls_verify: bool = Field(False, alias="insecureSkipTLSVerify")


class LoopbackData(K8sModel):
    additional_info: str = ""


class Metal3Data(K8sModel):
    """Optional restriction of the BareMetalHost namespaces searched for free hosts."""

    namespaces: List[str] = Field(default_factory=list)


class HardwareManagerSpec(K8sModel):
    adaptor_id: AdaptorID
    dell_data: Optional[DellData] = None
    loopback_data: Optional[LoopbackData] = None
    metal3_data: Optional[Metal3Data] = None


class HardwareManagerStatus(K8sModel):
    observed_generation: int = 0
    conditions: List[Condition] = Field(default_factory=list)


class HardwareManager(KubernetesObject):
    """Identifies which adaptor and which backend a NodePool is reconciled against."""

    API_GROUP: ClassVar[str] = PLUGIN_GROUP
    API_VERSION: ClassVar[str] = PLUGIN_VERSION
    KIND: ClassVar[str] = "HardwareManager"
    PLURAL: ClassVar[str] = "hardwaremanagers"

    spec: HardwareManagerSpec
    status: HardwareManagerStatus = Field(default_factory=HardwareManagerStatus)


class Bios(K8sModel):
    attributes: Dict[str, Any] = Field(default_factory=dict)


class HardwareProfileSpec(K8sModel):
    bios: Bios = Field(default_factory=Bios)
    bios_version: str = ""
    bmc_version: str = ""


class HardwareProfileStatus(K8sModel):
    observed_generation: int = 0
    conditions: List[Condition] = Field(default_factory=list)


class HardwareProfile(KubernetesObject):
    API_GROUP: ClassVar[str] = PLUGIN_GROUP
    API_VERSION: ClassVar[str] = PLUGIN_VERSION
    KIND: ClassVar[str] = "HardwareProfile"
    PLURAL: ClassVar[str] = "hardwareprofiles"

    spec: HardwareProfileSpec = Field(default_factory=HardwareProfileSpec)
    status: HardwareProfileStatus = Field(default_factory=HardwareProfileStatus)
