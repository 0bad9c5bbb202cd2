# src/hwmgr_plugin/core/nodepool_utils.py
"""
Helpers for reading and mutating NodePool objects.

Every write goes through the retry wrapper: the closure re-reads the
NodePool by key, applies the change to that fresh copy and writes it back.
The in-memory NodePool handed in by the caller is updated as well so the
rest of the pass sees the new values.
"""

import logging
from typing import Callable, List, Optional, Tuple

from ..models.conditions import CONFIG_SUCCESS, Condition, ConditionReason, ConditionStatus, ConditionType
from ..models.node import Node
from ..models.nodepool import NodePool
from ..storage.base_store import ResourceStore
from .conditions import find_status_condition, set_status_condition
from .exceptions import StoreError
from .retry import RetryPolicy, retry_on_conflict

logger = logging.getLogger(__name__)

NODEPOOL_FINALIZER = "oran-hwmgr-plugin/nodepool-finalizer"
RESOURCE_TYPE_ID_KEY = "resourceTypeId"


def get_resource_type_id(nodepool: NodePool) -> str:
    return nodepool.spec.extensions.get(RESOURCE_TYPE_ID_KEY, "")


def get_nodepool_provisioned_condition(nodepool: NodePool) -> Optional[Condition]:
    return find_status_condition(nodepool.status.conditions, ConditionType.PROVISIONED)


def is_nodepool_provisioned_completed(nodepool: NodePool) -> bool:
    condition = get_nodepool_provisioned_condition(nodepool)
    return condition is not None and condition.status == ConditionStatus.TRUE


def is_nodepool_provisioned_failed(nodepool: NodePool) -> bool:
    condition = get_nodepool_provisioned_condition(nodepool)
    return condition is not None and condition.reason == ConditionReason.FAILED.value


async def get_nodepool(store: ResourceStore, namespace: str, name: str) -> NodePool:
    return await store.get(NodePool, namespace, name)


async def _mutate_nodepool(
    store: ResourceStore,
    nodepool: NodePool,
    mutate: Callable[[NodePool], None],
    what: str,
    status: bool = True,
    policy: Optional[RetryPolicy] = None,
) -> None:
    async def _apply():
        fresh = await store.get(NodePool, nodepool.metadata.namespace, nodepool.metadata.name)
        mutate(fresh)
        if status:
            await store.update_status(fresh)
        else:
            await store.update(fresh)

    try:
        await retry_on_conflict(_apply, policy)
    except StoreError as e:
        raise type(e)(f"failed to update nodepool {what}: {nodepool.metadata.name}: {e}") from e


async def update_nodepool_status_condition(
    store: ResourceStore,
    nodepool: NodePool,
    condition_type: ConditionType,
    reason: ConditionReason,
    status: ConditionStatus,
    message: str,
    policy: Optional[RetryPolicy] = None,
) -> None:
    set_status_condition(nodepool.status.conditions, condition_type, reason, status, message)

    def _set(fresh: NodePool):
        set_status_condition(fresh.status.conditions, condition_type, reason, status, message)

    await _mutate_nodepool(store, nodepool, _set, "condition", policy=policy)


async def update_nodepool_properties(store: ResourceStore, nodepool: NodePool) -> None:
    properties = nodepool.status.properties.model_copy(deep=True)

    def _set(fresh: NodePool):
        fresh.status.properties = properties

    await _mutate_nodepool(store, nodepool, _set, "properties")


async def update_nodepool_selected_pools(store: ResourceStore, nodepool: NodePool) -> None:
    selected = dict(nodepool.status.selected_pools)

    def _set(fresh: NodePool):
        fresh.status.selected_pools = selected

    await _mutate_nodepool(store, nodepool, _set, "selectedPools")


async def update_nodepool_plugin_status(store: ResourceStore, nodepool: NodePool) -> None:
    """Records the generation handled by this pass as observed."""
    generation = nodepool.metadata.generation
    nodepool.status.hw_mgr_plugin.observed_generation = generation

    def _set(fresh: NodePool):
        fresh.status.hw_mgr_plugin.observed_generation = generation

    await _mutate_nodepool(store, nodepool, _set, "plugin status")


async def nodepool_add_finalizer(store: ResourceStore, nodepool: NodePool) -> None:
    nodepool.add_finalizer(NODEPOOL_FINALIZER)
    await _mutate_nodepool(
        store, nodepool, lambda fresh: fresh.add_finalizer(NODEPOOL_FINALIZER), "finalizer", status=False
    )


async def nodepool_remove_finalizer(store: ResourceStore, nodepool: NodePool) -> None:
    nodepool.remove_finalizer(NODEPOOL_FINALIZER)
    await _mutate_nodepool(
        store, nodepool, lambda fresh: fresh.remove_finalizer(NODEPOOL_FINALIZER), "finalizer", status=False
    )


async def derive_nodepool_status_from_nodes(
    store: ResourceStore,
    nodes: List[Node],
) -> Tuple[ConditionStatus, str, str]:
    """
    Evaluates the child nodes and returns the (status, reason, message) of
    the NodePool's Configured condition.

    The first node that has not applied its configuration decides the
    result. A node that cannot be read counts as in progress, never as
    success.
    """
    for node in nodes:
        try:
            updated = await store.get(Node, node.metadata.namespace, node.metadata.name)
        except StoreError as e:
            logger.error("Failed to fetch updated node %s: %s", node.metadata.name, e)
            return (
                ConditionStatus.FALSE,
                ConditionReason.IN_PROGRESS.value,
                f"Node {node.metadata.name} could not be read: {e}",
            )

        condition = find_status_condition(updated.status.conditions, ConditionType.CONFIGURED)
        if condition is None:
            return (
                ConditionStatus.FALSE,
                ConditionReason.IN_PROGRESS.value,
                f"Node {node.metadata.name} missing Configured condition",
            )

        if condition.reason != ConditionReason.CONFIG_APPLIED.value:
            return condition.status, condition.reason, f"Node {node.metadata.name}: {condition.message}"

    return ConditionStatus.TRUE, ConditionReason.CONFIG_APPLIED.value, CONFIG_SUCCESS
