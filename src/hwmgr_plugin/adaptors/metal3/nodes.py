# src/hwmgr_plugin/adaptors/metal3/nodes.py

import logging
from typing import Dict, List, Optional

from ...core.exceptions import ConflictError, NotFoundError
from ...core.retry import retry_on_conflict
from ...models.metal3 import BareMetalHost, ProvisioningState
from ...models.node import BMC, Interface, Node
from ...models.nodepool import NodePool, NodePoolData
from ...storage.base_store import ResourceStore
from .inventory import LABEL_PREFIX_RESOURCE_SELECTOR, LABEL_RESOURCE_POOL_ID, get_interface_labels

logger = logging.getLogger(__name__)

BMH_ALLOCATED_LABEL = "hwmgr-plugin.oran.openshift.io/allocated"
BMH_NODEPOOL_LABEL = "hwmgr-plugin.oran.openshift.io/nodePool"
BMH_GROUP_LABEL = "hwmgr-plugin.oran.openshift.io/nodeGroup"


def bmh_key(bmh: BareMetalHost) -> str:
    return f"{bmh.metadata.namespace}/{bmh.metadata.name}"


def node_name_for_bmh(bmh: BareMetalHost) -> str:
    return f"{bmh.metadata.namespace}-{bmh.metadata.name}"


def matches_group(bmh: BareMetalHost, data: NodePoolData) -> bool:
    """True if the host sits in the group's pool and carries every selector label of the group."""
    labels = bmh.metadata.labels
    if labels.get(LABEL_RESOURCE_POOL_ID) != data.resource_pool_id:
        return False
    for key, value in data.resource_selector.items():
        if not key.startswith(LABEL_PREFIX_RESOURCE_SELECTOR):
            key = LABEL_PREFIX_RESOURCE_SELECTOR + key
        if labels.get(key) != value:
            return False
    return True


def is_free(bmh: BareMetalHost) -> bool:
    return (
        bmh.metadata.labels.get(BMH_ALLOCATED_LABEL) != "true"
        and bmh.status.provisioning.state == ProvisioningState.AVAILABLE.value
        and not bmh.status.error_type
    )


async def list_hosts(store: ResourceStore, namespaces: List[str]) -> List[BareMetalHost]:
    if not namespaces:
        return await store.list(BareMetalHost)
    hosts = []
    for namespace in namespaces:
        hosts.extend(await store.list(BareMetalHost, namespace=namespace))
    return hosts


async def list_group_hosts(store: ResourceStore, nodepool: NodePool, group: str) -> List[BareMetalHost]:
    """Returns the hosts already allocated to the NodePool's group."""
    labels = {BMH_ALLOCATED_LABEL: "true", BMH_NODEPOOL_LABEL: nodepool.metadata.name, BMH_GROUP_LABEL: group}
    hosts = await store.list(BareMetalHost, labels=labels)
    return sorted(hosts, key=bmh_key)


async def mark_allocated(store: ResourceStore, bmh: BareMetalHost, nodepool: NodePool, group: str) -> bool:
    """
    Claims the host for the group. Returns False if another writer claimed
    it first, in which case the caller moves on to the next candidate.
    """

    async def _apply():
        fresh = await store.get(BareMetalHost, bmh.metadata.namespace, bmh.metadata.name)
        if not is_free(fresh):
            return False
        fresh.metadata.labels[BMH_ALLOCATED_LABEL] = "true"
        fresh.metadata.labels[BMH_NODEPOOL_LABEL] = nodepool.metadata.name
        fresh.metadata.labels[BMH_GROUP_LABEL] = group
        await store.update(fresh)
        return True

    try:
        return await retry_on_conflict(_apply)
    except ConflictError:
        return False


async def release_host(store: ResourceStore, namespace: str, name: str) -> None:
    """Removes the allocation labels from the host. A missing or already released host is fine."""

    async def _apply():
        try:
            fresh = await store.get(BareMetalHost, namespace, name)
        except NotFoundError:
            logger.info(f"[metal3] BareMetalHost {namespace}/{name} is gone, nothing to release")
            return
        labels = fresh.metadata.labels
        if BMH_ALLOCATED_LABEL not in labels:
            return
        for label in (BMH_ALLOCATED_LABEL, BMH_NODEPOOL_LABEL, BMH_GROUP_LABEL):
            labels.pop(label, None)
        await store.update(fresh)
        logger.info(f"[metal3] Released BareMetalHost {namespace}/{name}")

    await retry_on_conflict(_apply)


def get_node_interfaces(bmh: BareMetalHost) -> List[Interface]:
    details = bmh.status.hardware_details
    if details is None:
        return []
    labels = get_interface_labels(bmh)
    return [Interface(name=nic.name, label=labels.get(nic.name, ""), mac_address=nic.mac) for nic in details.nics]


def get_node_bmc(bmh: BareMetalHost) -> BMC:
    return BMC(address=bmh.spec.bmc.address, credentials_name=bmh.spec.bmc.credentials_name)


async def get_bmh_to_node_map(store: ResourceStore) -> Dict[str, Node]:
    """Maps "namespace/name" of each allocated host to the Node created from it."""
    nodes = {}
    for node in await store.list(Node):
        if node.spec.hw_mgr_node_id and node.spec.hw_mgr_node_ns:
            nodes[f"{node.spec.hw_mgr_node_ns}/{node.spec.hw_mgr_node_id}"] = node
    return nodes


def get_node_for_bmh(nodes: Dict[str, Node], bmh: BareMetalHost) -> Optional[Node]:
    return nodes.get(bmh_key(bmh))
