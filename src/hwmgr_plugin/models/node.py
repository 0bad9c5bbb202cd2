# src/hwmgr_plugin/models/node.py

from typing import ClassVar, List, Optional

from pydantic import Field

from .conditions import Condition
from .meta import K8sModel, KubernetesObject
from .nodepool import HWMGMT_GROUP, HWMGMT_VERSION


class BMC(K8sModel):
    """
    Connection info for a node's baseboard management controller.

    Attributes:
        address: Redfish-style URL of the BMC
        credentials_name: Name of the secret holding the BMC credentials
    """

    address: str = ""
    credentials_name: str = ""


class Interface(K8sModel):
    name: str = ""
    label: str = ""
    mac_address: str = ""


class NodeSpec(K8sModel):
    node_pool: str = ""
    group_name: str = ""
    hw_profile: str = ""
    hw_mgr_id: str = ""
    hw_mgr_node_id: str = ""
    hw_mgr_node_ns: str = ""


class NodeStatus(K8sModel):
    bmc: Optional[BMC] = None
    interfaces: List[Interface] = Field(default_factory=list)
    hostname: str = ""
    hw_profile: str = ""
    conditions: List[Condition] = Field(default_factory=list)


class Node(KubernetesObject):
    """One allocated physical machine, owned by exactly one NodePool."""

    API_GROUP: ClassVar[str] = HWMGMT_GROUP
    API_VERSION: ClassVar[str] = HWMGMT_VERSION
    KIND: ClassVar[str] = "Node"
    PLURAL: ClassVar[str] = "nodes"

    spec: NodeSpec = Field(default_factory=NodeSpec)
    status: NodeStatus = Field(default_factory=NodeStatus)
