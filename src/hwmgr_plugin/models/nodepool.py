# src/hwmgr_plugin/models/nodepool.py

from typing import ClassVar, Dict, List, Optional

from pydantic import Field

from .conditions import Condition
from .meta import K8sModel, KubernetesObject

HWMGMT_GROUP = "o2ims-hardwaremanagement.oran.openshift.io"
HWMGMT_VERSION = "v1alpha1"


class NodePoolData(K8sModel):
    """Describes one requested group of nodes."""

    name: str
    role: str = ""
    hw_profile: str = ""
    resource_pool_id: str = ""
    resource_selector: Dict[str, str] = Field(default_factory=dict)


class NodeGroup(K8sModel):
    node_pool_data: NodePoolData
    size: int = 0


class LocationSpec(K8sModel):
    site: str = ""


class NodePoolSpec(K8sModel):
    cloud_id: str = Field("", alias="cloudID")
    location_spec: LocationSpec = Field(default_factory=LocationSpec)
    hw_mgr_id: str = ""
    node_group: List[NodeGroup] = Field(default_factory=list)
    extensions: Dict[str, str] = Field(default_factory=dict)


class Properties(K8sModel):
    node_names: List[str] = Field(default_factory=list)


class HwMgrPluginStatus(K8sModel):
    observed_generation: int = 0


class NodePoolStatus(K8sModel):
    conditions: List[Condition] = Field(default_factory=list)
    selected_pools: Dict[str, str] = Field(default_factory=dict)
    properties: Properties = Field(default_factory=Properties)
    hw_mgr_plugin: HwMgrPluginStatus = Field(default_factory=HwMgrPluginStatus)


class NodePool(KubernetesObject):
    """A declarative request for a set of physical machines, grouped by node group."""

    API_GROUP: ClassVar[str] = HWMGMT_GROUP
    API_VERSION: ClassVar[str] = HWMGMT_VERSION
    KIND: ClassVar[str] = "NodePool"
    PLURAL: ClassVar[str] = "nodepools"

    spec: NodePoolSpec = Field(default_factory=NodePoolSpec)
    status: NodePoolStatus = Field(default_factory=NodePoolStatus)

    @property
    def cloud_id(self) -> str:
        return self.spec.cloud_id or self.metadata.name

    def find_group(self, name: str) -> Optional[NodeGroup]:
        for group in self.spec.node_group:
            if group.node_pool_data.name == name:
                return group
        return None
