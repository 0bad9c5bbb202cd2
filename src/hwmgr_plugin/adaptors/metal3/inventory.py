# src/hwmgr_plugin/adaptors/metal3/inventory.py
"""
Projection of BareMetalHost objects onto the generic inventory schema.

Everything here is a pure function of the host (and, for the hardware
profile, of the Node allocated from it). Data the host does not carry is
reported as UNKNOWN or as an empty string.
"""

import re
from typing import Dict, List, Optional

from ...models.inventory import (
    AdminState,
    OperationalState,
    PowerState,
    ProcessorInfo,
    ResourceInfo,
    ResourcePoolInfo,
    UsageState,
)
from ...models.metal3 import BareMetalHost, ProvisioningState
from ...models.node import Node

LABEL_PREFIX_RESOURCES = "resources.oran.openshift.io/"
LABEL_RESOURCE_POOL_ID = LABEL_PREFIX_RESOURCES + "resourcePoolId"
LABEL_SITE_ID = LABEL_PREFIX_RESOURCES + "siteId"

LABEL_PREFIX_RESOURCE_SELECTOR = "resourceselector.oran.openshift.io/"
LABEL_PREFIX_INTERFACES = "interfacelabel.oran.openshift.io/"

ANNOTATION_PREFIX_RESOURCE_INFO = "resourceinfo.oran.openshift.io/"
ANNOTATION_RESOURCE_INFO_DESCRIPTION = ANNOTATION_PREFIX_RESOURCE_INFO + "description"
ANNOTATION_RESOURCE_INFO_PART_NUMBER = ANNOTATION_PREFIX_RESOURCE_INFO + "partNumber"
ANNOTATION_RESOURCE_INFO_GLOBAL_ASSET_ID = ANNOTATION_PREFIX_RESOURCE_INFO + "globalAssetId"
ANNOTATION_RESOURCE_INFO_GROUPS = ANNOTATION_PREFIX_RESOURCE_INFO + "groups"

INVENTORY_STATES = (
    ProvisioningState.AVAILABLE.value,
    ProvisioningState.PROVISIONING.value,
    ProvisioningState.PROVISIONED.value,
    ProvisioningState.PREPARING.value,
)

_RE_INTERFACE_LABEL = re.compile("^" + re.escape(LABEL_PREFIX_INTERFACES) + "(.*)")
_RE_RESOURCE_SELECTOR_LABEL = re.compile("^" + re.escape(LABEL_PREFIX_RESOURCE_SELECTOR) + "(.*)")
_RE_GROUP_SEPARATOR = re.compile(r" *, *")


def include_in_inventory(bmh: BareMetalHost) -> bool:
    labels = bmh.metadata.labels
    if not labels.get(LABEL_RESOURCE_POOL_ID) or not labels.get(LABEL_SITE_ID):
        return False
    return bmh.status.provisioning.state in INVENTORY_STATES


def get_interface_labels(bmh: BareMetalHost) -> Dict[str, str]:
    """Maps NIC names to the interface label carried by the host for them."""
    result = {}
    for label, value in bmh.metadata.labels.items():
        match = _RE_INTERFACE_LABEL.match(label)
        if match:
            result[value] = match.group(1)
    return result


def get_resource_info_groups(bmh: BareMetalHost) -> Optional[List[str]]:
    annotation = bmh.metadata.annotations.get(ANNOTATION_RESOURCE_INFO_GROUPS)
    if annotation is None:
        return None
    return _RE_GROUP_SEPARATOR.split(annotation)


def get_resource_info_tags(bmh: BareMetalHost) -> List[str]:
    tags = []
    for label, value in bmh.metadata.labels.items():
        match = _RE_RESOURCE_SELECTOR_LABEL.match(label)
        if match:
            tags.append(f"{match.group(1)}: {value}")
    return tags


def get_resource_info_processors(bmh: BareMetalHost) -> List[ProcessorInfo]:
    details = bmh.status.hardware_details
    if details is None:
        return []
    return [
        ProcessorInfo(
            architecture=details.cpu.arch,
            cores=details.cpu.count,
            manufacturer="",
            model=details.cpu.model,
        )
    ]


def get_resource_info_power_state(bmh: BareMetalHost) -> PowerState:
    return PowerState.ON if bmh.status.powered_on else PowerState.OFF


def get_resource_info(bmh: BareMetalHost, node: Optional[Node] = None) -> ResourceInfo:
    """Builds the inventory record for a host, using the allocated Node for the hardware profile."""
    details = bmh.status.hardware_details
    annotations = bmh.metadata.annotations
    return ResourceInfo(
        resource_id=f"{bmh.metadata.namespace}/{bmh.metadata.name}",
        resource_pool_id=bmh.metadata.labels.get(LABEL_RESOURCE_POOL_ID, ""),
        name=bmh.metadata.name,
        description=annotations.get(ANNOTATION_RESOURCE_INFO_DESCRIPTION, ""),
        admin_state=AdminState.UNKNOWN,
        operational_state=OperationalState.UNKNOWN,
        power_state=get_resource_info_power_state(bmh),
        usage_state=UsageState.UNKNOWN,
        global_asset_id=annotations.get(ANNOTATION_RESOURCE_INFO_GLOBAL_ASSET_ID, ""),
        groups=get_resource_info_groups(bmh),
        hw_profile=node.status.hw_profile if node is not None else "",
        labels=dict(bmh.metadata.labels),
        memory=details.ram_mebibytes if details else 0,
        model=details.system_vendor.product_name if details else "",
        part_number=annotations.get(ANNOTATION_RESOURCE_INFO_PART_NUMBER, ""),
        processors=get_resource_info_processors(bmh),
        serial_number=details.system_vendor.serial_number if details else "",
        tags=get_resource_info_tags(bmh),
        vendor=details.system_vendor.manufacturer if details else "",
    )


def get_resource_pool_info(bmh: BareMetalHost) -> ResourcePoolInfo:
    pool_id = bmh.metadata.labels[LABEL_RESOURCE_POOL_ID]
    return ResourcePoolInfo(
        resource_pool_id=pool_id,
        name=pool_id,
        description=pool_id,
        site_id=bmh.metadata.labels[LABEL_SITE_ID],
    )
