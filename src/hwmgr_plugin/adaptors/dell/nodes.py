# src/hwmgr_plugin/adaptors/dell/nodes.py
"""
Translation of vendor API resources into Node objects.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ...core.exceptions import AdaptorValidationError
from ...core.node_utils import create_node, set_node_provisioned, update_node_status
from ...models.conditions import ConditionReason, ConditionStatus
from ...models.inventory import ResourceInfo, ResourcePoolInfo
from ...models.node import BMC, Interface, Node
from ...models.nodepool import NodePool
from ...storage.base_store import ResourceStore

logger = logging.getLogger(__name__)

IDRAC_URL_PREFIX = "idrac-virtualmedia+https://"
IDRAC_URL_SUFFIX = "/redfish/v1/Systems/System.Embedded.1"

EXTENSIONS_NICS = "O2-nics"
EXTENSIONS_NADS = "nads"

LABEL_NAME_KEY = "name"
LABEL_LABEL_KEY = "label"


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Lom(_ApiModel):
    ip_address: Optional[str] = None
    password: Optional[str] = None


class Compute(_ApiModel):
    lom: Optional[Lom] = None


class ResourceAttribute(_ApiModel):
    compute: Optional[Compute] = None


class DellResource(_ApiModel):
    id: str
    name: str = ""
    description: str = ""
    resource_pool_id: str = ""
    resource_profile_id: str = Field("", alias="resourceProfileID")
    resource_attribute: Optional[ResourceAttribute] = None
    extensions: Optional[Dict[str, Dict[str, Any]]] = None
    vendor: str = ""
    model: str = ""
    serial_number: str = ""
    memory: int = 0


class ExtensionsLabel(BaseModel):
    key: str = Field("", alias="Key")
    value: str = Field("", alias="Value")


class ExtensionPort(BaseModel):
    mac: str = ""
    mbps: int = 0
    labels: List[ExtensionsLabel] = Field(default_factory=list, alias="Labels")


class ExtensionInterface(BaseModel):
    model: str = ""
    name: str = ""
    ports: List[ExtensionPort] = Field(default_factory=list)


def parse_extension_interfaces(resource: DellResource) -> List[ExtensionInterface]:
    if resource.extensions is None:
        raise AdaptorValidationError("resource structure missing required extensions field")
    nics = resource.extensions.get(EXTENSIONS_NICS)
    if nics is None:
        raise AdaptorValidationError("resource structure missing required extensions nics field")
    nads = nics.get(EXTENSIONS_NADS)
    if nads is None:
        raise AdaptorValidationError("resource structure missing required extensions nads field")
    try:
        return [ExtensionInterface.model_validate(nad) for nad in nads]
    except (ValidationError, TypeError) as e:
        raise AdaptorValidationError("resource structure contains invalid nic data format") from e


def get_node_interfaces(resource: DellResource) -> List[Interface]:
    """Flattens the resource's NIC ports into interfaces. Ports without a name label are skipped."""
    interfaces = []
    for nad in parse_extension_interfaces(resource):
        for port in nad.ports:
            iface = Interface(mac_address=port.mac)
            for label in port.labels:
                if label.key == LABEL_NAME_KEY:
                    iface.name = label.value
                elif label.key == LABEL_LABEL_KEY:
                    iface.label = label.value
            if not iface.name:
                continue
            interfaces.append(iface)
    return interfaces


def validate_node_config(resource: DellResource) -> None:
    attr = resource.resource_attribute
    lom = attr.compute.lom if attr and attr.compute else None
    if lom is None or lom.ip_address is None or lom.password is None:
        raise AdaptorValidationError(f"resource {resource.id} missing required resource attribute field")
    try:
        parse_extension_interfaces(resource)
    except AdaptorValidationError as e:
        raise AdaptorValidationError(f"resource {resource.id} has an invalid interface list: {e}") from e


def bmc_address(resource: DellResource) -> str:
    return f"{IDRAC_URL_PREFIX}{resource.resource_attribute.compute.lom.ip_address}{IDRAC_URL_SUFFIX}"


async def allocate_node(store: ResourceStore, nodepool: NodePool, resource: DellResource, group: str) -> str:
    """Creates (or completes) the Node for a resource of the NodePool's resource group."""
    validate_node_config(resource)
    nodename = resource.id
    hwprofile = resource.resource_profile_id
    await create_node(store, nodepool, nodename, group, hwprofile, hw_mgr_node_id=resource.id)

    interfaces = get_node_interfaces(resource)

    def _set_status(node: Node):
        node.status.bmc = BMC(
            address=bmc_address(resource),
            credentials_name=resource.resource_attribute.compute.lom.password,
        )
        node.status.hostname = resource.name
        node.status.interfaces = interfaces
        if not node.status.hw_profile:
            node.status.hw_profile = hwprofile
        set_node_provisioned(node, ConditionReason.COMPLETED, ConditionStatus.TRUE, "Provisioned")

    await update_node_status(store, nodepool.metadata.namespace, nodename, _set_status)
    logger.info(f"[dell-hwmgr] Node {nodename} allocated to group {group}")
    return nodename


def get_resource_info(resource: DellResource) -> ResourceInfo:
    return ResourceInfo(
        resource_id=resource.id,
        resource_pool_id=resource.resource_pool_id,
        name=resource.name or resource.id,
        description=resource.description,
        hw_profile=resource.resource_profile_id,
        memory=resource.memory,
        model=resource.model,
        serial_number=resource.serial_number,
        vendor=resource.vendor,
    )


def get_resource_pool_info(pool: Dict[str, Any]) -> ResourcePoolInfo:
    pool_id = pool.get("id", "")
    return ResourcePoolInfo(
        resource_pool_id=pool_id,
        name=pool.get("name") or pool_id,
        description=pool.get("description", ""),
        site_id=pool.get("siteId"),
    )
