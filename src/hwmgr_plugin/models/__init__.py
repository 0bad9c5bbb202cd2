from .conditions import CONFIG_SUCCESS, Condition, ConditionReason, ConditionStatus, ConditionType
from .hardware_manager import AdaptorID, HardwareManager, HardwareProfile
from .inventory import ResourceInfo, ResourcePoolInfo
from .meta import ConfigMap, KubernetesObject, ObjectMeta, Secret
from .metal3 import BareMetalHost
from .node import BMC, Interface, Node
from .nodepool import NodeGroup, NodePool, NodePoolData

__all__ = [
    "AdaptorID",
    "BareMetalHost",
    "BMC",
    "CONFIG_SUCCESS",
    "Condition",
    "ConditionReason",
    "ConditionStatus",
    "ConditionType",
    "ConfigMap",
    "HardwareManager",
    "HardwareProfile",
    "Interface",
    "KubernetesObject",
    "Node",
    "NodeGroup",
    "NodePool",
    "NodePoolData",
    "ObjectMeta",
    "ResourceInfo",
    "ResourcePoolInfo",
    "Secret",
]
