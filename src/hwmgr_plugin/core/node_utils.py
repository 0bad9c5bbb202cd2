# src/hwmgr_plugin/core/node_utils.py
"""
Helpers for the Node objects created by the adaptors on behalf of a NodePool.
"""

import logging
from typing import Callable, List, Optional

from ..models.conditions import ConditionReason, ConditionStatus, ConditionType
from ..models.meta import ObjectMeta
from ..models.node import Node, NodeSpec
from ..models.nodepool import NodePool
from ..storage.base_store import ResourceStore
from .conditions import find_status_condition, set_status_condition
from .exceptions import AlreadyExistsError, NotFoundError
from .retry import retry_on_conflict, retry_on_conflict_or_not_found

logger = logging.getLogger(__name__)

# Set on a Node while it moves to another hardware profile; the value names the target profile.
NODE_CONFIG_ANNOTATION = "hwmgr-plugin.oran.openshift.io/config-in-progress"


async def get_node(store: ResourceStore, namespace: str, name: str) -> Optional[Node]:
    """Returns the Node, or None if it does not exist."""
    try:
        return await store.get(Node, namespace, name)
    except NotFoundError:
        return None


async def get_child_nodes(store: ResourceStore, nodepool: NodePool) -> List[Node]:
    """Returns the Nodes owned by the NodePool, sorted by name."""
    nodes = await store.list(Node, namespace=nodepool.metadata.namespace)
    children = [node for node in nodes if node.is_owned_by(nodepool)]
    return sorted(children, key=lambda node: node.metadata.name)


async def create_node(
    store: ResourceStore,
    nodepool: NodePool,
    nodename: str,
    groupname: str,
    hwprofile: str,
    hw_mgr_node_id: str = "",
    hw_mgr_node_ns: str = "",
) -> Node:
    """
    Creates a Node owned by the NodePool, in the NodePool's namespace.
    An existing Node with the same name is returned unchanged.
    """
    existing = await get_node(store, nodepool.metadata.namespace, nodename)
    if existing is not None:
        logger.info("Node %s already exists, skipping create", nodename)
        return existing

    node = Node(
        metadata=ObjectMeta(
            name=nodename,
            namespace=nodepool.metadata.namespace,
            owner_references=[nodepool.owner_reference()],
        ),
        spec=NodeSpec(
            node_pool=nodepool.cloud_id,
            group_name=groupname,
            hw_profile=hwprofile,
            hw_mgr_id=nodepool.spec.hw_mgr_id,
            hw_mgr_node_id=hw_mgr_node_id,
            hw_mgr_node_ns=hw_mgr_node_ns,
        ),
    )
    try:
        created = await store.create(node)
    except AlreadyExistsError:
        logger.info("Node %s was created concurrently", nodename)
        return await store.get(Node, nodepool.metadata.namespace, nodename)

    logger.info("Node %s created for nodepool %s group %s", nodename, nodepool.metadata.name, groupname)
    return created


async def update_node_status(
    store: ResourceStore,
    namespace: str,
    nodename: str,
    mutate: Callable[[Node], None],
) -> Node:
    """
    Applies mutate to a fresh copy of the Node's status and writes it back.

    A not-found on the first read is tolerated once, since the Node may have
    been created a moment ago.
    """

    async def _apply():
        node = await store.get(Node, namespace, nodename)
        mutate(node)
        return await store.update_status(node)

    return await retry_on_conflict_or_not_found(_apply)


async def update_node(store: ResourceStore, namespace: str, nodename: str, mutate: Callable[[Node], None]) -> Node:
    """Applies mutate to a fresh copy of the Node's metadata and spec and writes it back."""

    async def _apply():
        node = await store.get(Node, namespace, nodename)
        mutate(node)
        return await store.update(node)

    return await retry_on_conflict(_apply)


def set_node_provisioned(node: Node, reason: ConditionReason, status: ConditionStatus, message: str) -> bool:
    """
    Sets the Node's Provisioned condition, unless that would move it back
    from Completed. Returns True if the condition was written.
    """
    current = find_status_condition(node.status.conditions, ConditionType.PROVISIONED)
    if (
        current is not None
        and current.reason == ConditionReason.COMPLETED.value
        and reason != ConditionReason.COMPLETED
    ):
        logger.debug("Node %s already provisioned, ignoring %s", node.metadata.name, reason.value)
        return False
    set_status_condition(node.status.conditions, ConditionType.PROVISIONED, reason, status, message)
    return True


def get_pending_hw_profile(node: Node) -> Optional[str]:
    """Returns the profile the node is being moved to, or None when no update is pending."""
    return node.metadata.annotations.get(NODE_CONFIG_ANNOTATION)


def get_target_hw_profile(node: Node) -> str:
    """Returns the profile the node runs, or is moving to. The spec only names the profile it was created with."""
    return get_pending_hw_profile(node) or node.status.hw_profile or node.spec.hw_profile


async def set_nodes_configuring(store: ResourceStore, nodes: List[Node], hwprofile: str) -> None:
    """Marks each node as having a configuration update pending towards hwprofile. Node specs are left alone."""
    for node in nodes:

        def _mark(fresh: Node):
            fresh.metadata.annotations[NODE_CONFIG_ANNOTATION] = hwprofile

        await update_node(store, node.metadata.namespace, node.metadata.name, _mark)

        def _configuring(fresh: Node):
            set_status_condition(
                fresh.status.conditions,
                ConditionType.CONFIGURED,
                ConditionReason.CONFIG_UPDATE,
                ConditionStatus.FALSE,
                f"Update requested to hardware profile {hwprofile}",
            )

        await update_node_status(store, node.metadata.namespace, node.metadata.name, _configuring)
        logger.info("Node %s configuration update to %s requested", node.metadata.name, hwprofile)


async def set_node_config_applied(store: ResourceStore, node: Node) -> None:
    """Records that the node runs its target hardware profile and clears the pending update."""

    def _applied(fresh: Node):
        fresh.status.hw_profile = get_target_hw_profile(fresh)
        set_status_condition(
            fresh.status.conditions,
            ConditionType.CONFIGURED,
            ConditionReason.CONFIG_APPLIED,
            ConditionStatus.TRUE,
            "Configuration has been applied",
        )

    applied = await update_node_status(store, node.metadata.namespace, node.metadata.name, _applied)

    if get_pending_hw_profile(applied) is not None:

        def _clear(fresh: Node):
            fresh.metadata.annotations.pop(NODE_CONFIG_ANNOTATION, None)

        await update_node(store, node.metadata.namespace, node.metadata.name, _clear)
