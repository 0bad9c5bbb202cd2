# src/hwmgr_plugin/adaptors/base.py

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from ..core.conditions import find_status_condition
from ..core.exceptions import AdaptorValidationError
from ..core.fsm import NodePoolFSMAction, determine_action
from ..core.node_utils import get_child_nodes, get_target_hw_profile, set_node_config_applied, set_nodes_configuring
from ..core.nodepool_utils import (
    derive_nodepool_status_from_nodes,
    update_nodepool_plugin_status,
    update_nodepool_properties,
    update_nodepool_status_condition,
)
from ..core.results import ReconcileResult, do_not_requeue, requeue_with_short_interval
from ..models.conditions import ConditionReason, ConditionStatus, ConditionType
from ..models.hardware_manager import AdaptorID, HardwareManager
from ..models.inventory import ResourceInfo, ResourcePoolInfo
from ..models.node import Node
from ..models.nodepool import NodePool
from ..storage.base_store import ResourceStore

logger = logging.getLogger(__name__)

ResourcePoolsResult = Tuple[List[ResourcePoolInfo], int, Optional[Exception]]
ResourcesResult = Tuple[List[ResourceInfo], int, Optional[Exception]]


class HwMgrAdaptor(ABC):
    """
    Abstract base class for hardware management backends.

    The reconciler only ever talks to this interface. Each subclass owns
    its allocation bookkeeping; the shared part is the dispatch of a
    NodePool to the hook matching its current action.
    """

    adaptor_id: AdaptorID

    def __init__(self, store: ResourceStore):
        self.store = store

    @abstractmethod
    async def get_resource_pools(self, hwmgr: HardwareManager) -> ResourcePoolsResult:
        """
        Lists the backend's resource pools.

        Returns:
            (pools, http status, error): 200 on success, 503 when the backend
            cannot be reached, 500 on any other failure.
        """
        pass

    @abstractmethod
    async def get_resources(self, hwmgr: HardwareManager) -> ResourcesResult:
        """
        Lists the backend's resources, with the same status convention as
        get_resource_pools.
        """
        pass

    @abstractmethod
    async def handle_nodepool_create(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        pass

    @abstractmethod
    async def handle_nodepool_processing(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        pass

    @abstractmethod
    async def handle_nodepool_spec_changed(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        pass

    @abstractmethod
    async def handle_nodepool_deletion(self, hwmgr: HardwareManager, nodepool: NodePool) -> bool:
        """
        Releases every backend resource held by the NodePool.

        Releasing a resource that is already released must succeed.

        Returns:
            True once the NodePool can be finalized.
        """
        pass

    async def handle_nodepool(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        action = determine_action(nodepool)
        logger.info(f"[{self.adaptor_id.value}] NodePool {nodepool.key()}: {action.value}")

        if action == NodePoolFSMAction.CREATE:
            return await self.handle_nodepool_create(hwmgr, nodepool)
        if action == NodePoolFSMAction.PROCESSING:
            if nodepool.metadata.generation != nodepool.status.hw_mgr_plugin.observed_generation:
                # The spec moved while provisioning; act on the new one before finishing.
                logger.info(f"[{self.adaptor_id.value}] NodePool {nodepool.key()}: spec changed while processing")
                return await self.handle_nodepool_spec_changed(hwmgr, nodepool)
            return await self.handle_nodepool_processing(hwmgr, nodepool)
        if action == NodePoolFSMAction.SPEC_CHANGED:
            return await self.handle_nodepool_spec_changed(hwmgr, nodepool)

        # Failed stays failed until the spec changes; Noop is the steady state.
        return do_not_requeue()

    async def start_provisioning(self, nodepool: NodePool, message: str) -> ReconcileResult:
        """Moves the NodePool into the Processing state and records the generation being acted on."""
        await update_nodepool_status_condition(
            self.store,
            nodepool,
            ConditionType.PROVISIONED,
            ConditionReason.IN_PROGRESS,
            ConditionStatus.FALSE,
            message,
        )
        await update_nodepool_plugin_status(self.store, nodepool)
        return requeue_with_short_interval()

    async def finish_provisioning(self, nodepool: NodePool, nodes: Optional[List[Node]] = None) -> ReconcileResult:
        """
        Completes a NodePool whose nodes are all provisioned.

        When a configuration update is pending, the pool's Configured
        condition is derived from its nodes first, and the pool stays in
        Processing until every node has applied it.
        """
        if nodes is None:
            nodes = await get_child_nodes(self.store, nodepool)

        if find_status_condition(nodepool.status.conditions, ConditionType.CONFIGURED) is not None:
            status, reason, message = await derive_nodepool_status_from_nodes(self.store, nodes)
            await update_nodepool_status_condition(
                self.store, nodepool, ConditionType.CONFIGURED, reason, status, message
            )
            if reason == ConditionReason.FAILED.value:
                raise AdaptorValidationError(f"configuration of nodepool {nodepool.metadata.name} failed: {message}")
            if status != ConditionStatus.TRUE:
                return requeue_with_short_interval()

        nodepool.status.properties.node_names = sorted(node.metadata.name for node in nodes)
        await update_nodepool_properties(self.store, nodepool)
        await update_nodepool_status_condition(
            self.store,
            nodepool,
            ConditionType.PROVISIONED,
            ConditionReason.COMPLETED,
            ConditionStatus.TRUE,
            "Created",
        )
        await update_nodepool_plugin_status(self.store, nodepool)
        logger.info(f"[{self.adaptor_id.value}] NodePool {nodepool.key()} provisioned with {len(nodes)} node(s)")
        return do_not_requeue()

    async def request_profile_updates(self, nodepool: NodePool, nodes: List[Node]) -> bool:
        """
        Flags every node whose group now names a different hardware profile
        than the one the node runs or is already moving to. Returns True if
        any node was flagged, in which case the pool's Configured condition
        is set in progress.
        """
        stale: Dict[str, List[Node]] = {}
        for node in nodes:
            group = nodepool.find_group(node.spec.group_name)
            if group is None:
                logger.warning(
                    f"[{self.adaptor_id.value}] Node {node.metadata.name} belongs to unknown group {node.spec.group_name}"
                )
                continue
            if get_target_hw_profile(node) != group.node_pool_data.hw_profile:
                stale.setdefault(group.node_pool_data.name, []).append(node)

        for groupname, flagged in stale.items():
            hwprofile = nodepool.find_group(groupname).node_pool_data.hw_profile
            logger.info(
                f"[{self.adaptor_id.value}] Group {groupname}: {len(flagged)} node(s) moving to profile {hwprofile}"
            )
            await set_nodes_configuring(self.store, flagged, hwprofile)

        changed = bool(stale)
        if changed:
            await update_nodepool_status_condition(
                self.store,
                nodepool,
                ConditionType.CONFIGURED,
                ConditionReason.IN_PROGRESS,
                ConditionStatus.FALSE,
                "Configuration update in progress",
            )
        return changed

    async def apply_pending_configuration(self, nodes: List[Node], is_ready: Callable[[Node], bool]) -> None:
        """
        Records the configuration as applied on nodes the backend reports
        ready, when they were flagged for an update or never configured.
        """
        for node in nodes:
            condition = find_status_condition(node.status.conditions, ConditionType.CONFIGURED)
            if condition is not None and condition.reason != ConditionReason.CONFIG_UPDATE.value:
                continue
            if is_ready(node):
                await set_node_config_applied(self.store, node)

    async def close(self):
        pass
