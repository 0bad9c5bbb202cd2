# src/hwmgr_plugin/adaptors/metal3/adaptor.py

import logging
from http import HTTPStatus
from typing import Dict, List

from ...core.config import config
from ...core.exceptions import AdaptorValidationError, NotFoundError, StoreError, TransientStoreError
from ...core.node_utils import create_node, get_child_nodes, set_node_provisioned, update_node_status
from ...core.nodepool_utils import update_nodepool_selected_pools
from ...core.results import ReconcileResult, requeue_with_short_interval
from ...models.conditions import ConditionReason, ConditionStatus
from ...models.hardware_manager import AdaptorID, HardwareManager, HardwareProfile
from ...models.metal3 import BareMetalHost, ProvisioningState
from ...models.node import Node
from ...models.nodepool import NodeGroup, NodePool
from ..base import HwMgrAdaptor, ResourcePoolsResult, ResourcesResult
from .inventory import get_resource_info, get_resource_pool_info, include_in_inventory
from .nodes import (
    BMH_NODEPOOL_LABEL,
    bmh_key,
    get_bmh_to_node_map,
    get_node_bmc,
    get_node_for_bmh,
    get_node_interfaces,
    is_free,
    list_group_hosts,
    list_hosts,
    mark_allocated,
    matches_group,
    node_name_for_bmh,
    release_host,
)

logger = logging.getLogger(__name__)

READY_STATES = (
    ProvisioningState.AVAILABLE.value,
    ProvisioningState.PROVISIONED.value,
    ProvisioningState.EXTERNALLY_PROVISIONED.value,
)


def _store_error_status(e: StoreError) -> int:
    if isinstance(e, TransientStoreError):
        return HTTPStatus.SERVICE_UNAVAILABLE
    return HTTPStatus.INTERNAL_SERVER_ERROR


class Metal3Adaptor(HwMgrAdaptor):
    """
    Allocates BareMetalHosts managed by the metal3 baremetal operator.

    A host is claimed for a node group by labelling it; the Node created
    from it records the host's name and namespace, and follows the host's
    provisioning state.
    """

    adaptor_id = AdaptorID.METAL3

    def _namespaces(self, hwmgr: HardwareManager) -> List[str]:
        if hwmgr.spec.metal3_data is None:
            return []
        return hwmgr.spec.metal3_data.namespaces

    async def get_resource_pools(self, hwmgr: HardwareManager) -> ResourcePoolsResult:
        try:
            hosts = await list_hosts(self.store, self._namespaces(hwmgr))
        except StoreError as e:
            return [], _store_error_status(e), e

        pools = {}
        for bmh in hosts:
            if include_in_inventory(bmh):
                pool = get_resource_pool_info(bmh)
                pools.setdefault(pool.resource_pool_id, pool)
        return list(pools.values()), HTTPStatus.OK, None

    async def get_resources(self, hwmgr: HardwareManager) -> ResourcesResult:
        try:
            nodes = await get_bmh_to_node_map(self.store)
            hosts = await list_hosts(self.store, self._namespaces(hwmgr))
        except StoreError as e:
            logger.info(f"[metal3] Unable to query hosts and nodes: {e}")
            return [], _store_error_status(e), e

        resources = [
            get_resource_info(bmh, get_node_for_bmh(nodes, bmh))
            for bmh in sorted(hosts, key=bmh_key)
            if include_in_inventory(bmh)
        ]
        return resources, HTTPStatus.OK, None

    async def _validate_profiles(self, nodepool: NodePool) -> None:
        for group in nodepool.spec.node_group:
            data = group.node_pool_data
            if not data.hw_profile:
                raise AdaptorValidationError(f"group {data.name} in nodepool {nodepool.metadata.name} has no hwProfile")
            try:
                await self.store.get(HardwareProfile, config.NAMESPACE, data.hw_profile)
            except NotFoundError as e:
                raise AdaptorValidationError(
                    f"hardware profile {data.hw_profile} for group {data.name} in nodepool "
                    f"{nodepool.metadata.name} does not exist"
                ) from e

    async def _allocate_group(self, hwmgr: HardwareManager, nodepool: NodePool, group: NodeGroup) -> List[BareMetalHost]:
        data = group.node_pool_data
        allocated = await list_group_hosts(self.store, nodepool, data.name)
        if len(allocated) >= group.size:
            return allocated

        candidates = [
            bmh
            for bmh in sorted(await list_hosts(self.store, self._namespaces(hwmgr)), key=bmh_key)
            if matches_group(bmh, data) and is_free(bmh)
        ]
        for bmh in candidates:
            if len(allocated) >= group.size:
                break
            if await mark_allocated(self.store, bmh, nodepool, data.name):
                logger.info(f"[metal3] Allocated BareMetalHost {bmh_key(bmh)} to group {data.name}")
                allocated.append(bmh)

        if len(allocated) < group.size:
            raise AdaptorValidationError(
                f"insufficient free hosts in pool {data.resource_pool_id} for group {data.name}: "
                f"need {group.size}, allocated {len(allocated)}"
            )
        return allocated

    async def _ensure_node(self, nodepool: NodePool, group: str, hwprofile: str, bmh: BareMetalHost) -> None:
        nodename = node_name_for_bmh(bmh)
        await create_node(
            self.store,
            nodepool,
            nodename,
            group,
            hwprofile,
            hw_mgr_node_id=bmh.metadata.name,
            hw_mgr_node_ns=bmh.metadata.namespace,
        )

        def _set_status(node: Node):
            node.status.bmc = get_node_bmc(bmh)
            if not node.status.hw_profile:
                node.status.hw_profile = hwprofile
            set_node_provisioned(
                node, ConditionReason.IN_PROGRESS, ConditionStatus.FALSE, "Hardware provisioning in progress"
            )

        await update_node_status(self.store, nodepool.metadata.namespace, nodename, _set_status)

    async def _allocate_nodepool(self, hwmgr: HardwareManager, nodepool: NodePool) -> None:
        for group in nodepool.spec.node_group:
            data = group.node_pool_data
            for bmh in await self._allocate_group(hwmgr, nodepool, group):
                await self._ensure_node(nodepool, data.name, data.hw_profile, bmh)
            nodepool.status.selected_pools[data.name] = data.resource_pool_id
        await update_nodepool_selected_pools(self.store, nodepool)

    async def _check_node(self, node: Node) -> bool:
        """
        Advances the node from its host's state. Returns True once the host is ready.

        Raises:
            AdaptorValidationError: If the host is gone or reports an error.
        """
        namespace, name = node.spec.hw_mgr_node_ns, node.spec.hw_mgr_node_id
        try:
            bmh = await self.store.get(BareMetalHost, namespace, name)
        except NotFoundError as e:
            raise AdaptorValidationError(f"BareMetalHost {namespace}/{name} for node {node.metadata.name} not found") from e

        if bmh.status.error_type:
            message = f"BareMetalHost {namespace}/{name} in error: {bmh.status.error_type}: {bmh.status.error_message}"
            await update_node_status(
                self.store,
                node.metadata.namespace,
                node.metadata.name,
                lambda fresh: set_node_provisioned(fresh, ConditionReason.FAILED, ConditionStatus.FALSE, message),
            )
            raise AdaptorValidationError(f"node {node.metadata.name}: {message}")

        if bmh.status.provisioning.state not in READY_STATES:
            logger.debug(f"[metal3] Node {node.metadata.name} waiting on host state '{bmh.status.provisioning.state}'")
            return False

        def _set_ready(fresh: Node):
            fresh.status.bmc = get_node_bmc(bmh)
            fresh.status.interfaces = get_node_interfaces(bmh)
            if bmh.status.hardware_details is not None:
                fresh.status.hostname = bmh.status.hardware_details.hostname
            set_node_provisioned(fresh, ConditionReason.COMPLETED, ConditionStatus.TRUE, "Provisioned")

        await update_node_status(self.store, node.metadata.namespace, node.metadata.name, _set_ready)
        return True

    async def handle_nodepool_create(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        await self._validate_profiles(nodepool)
        await self._allocate_nodepool(hwmgr, nodepool)
        return await self.start_provisioning(nodepool, "Creating nodes")

    async def handle_nodepool_processing(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        await self._allocate_nodepool(hwmgr, nodepool)

        ready: Dict[str, bool] = {}
        for node in await get_child_nodes(self.store, nodepool):
            ready[node.metadata.name] = await self._check_node(node)

        if not all(ready.values()):
            pending = sorted(name for name, ok in ready.items() if not ok)
            logger.info(f"[metal3] NodePool {nodepool.key()}: waiting on nodes {pending}")
            return requeue_with_short_interval()

        nodes = await get_child_nodes(self.store, nodepool)
        await self.apply_pending_configuration(nodes, lambda node: ready.get(node.metadata.name, False))
        return await self.finish_provisioning(nodepool)

    async def handle_nodepool_spec_changed(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        await self._validate_profiles(nodepool)
        for group in nodepool.spec.node_group:
            data = group.node_pool_data
            current = await list_group_hosts(self.store, nodepool, data.name)
            if group.size < len(current):
                raise AdaptorValidationError(
                    f"scale-down of group {data.name} in nodepool {nodepool.metadata.name} is not supported"
                )

        await self._allocate_nodepool(hwmgr, nodepool)
        nodes = await get_child_nodes(self.store, nodepool)
        await self.request_profile_updates(nodepool, nodes)
        return await self.start_provisioning(nodepool, "Processing spec change")

    async def handle_nodepool_deletion(self, hwmgr: HardwareManager, nodepool: NodePool) -> bool:
        logger.info(f"[metal3] Finalizing nodepool {nodepool.key()}")
        released = set()
        for node in await get_child_nodes(self.store, nodepool):
            if node.spec.hw_mgr_node_id and node.spec.hw_mgr_node_ns:
                await release_host(self.store, node.spec.hw_mgr_node_ns, node.spec.hw_mgr_node_id)
                released.add(f"{node.spec.hw_mgr_node_ns}/{node.spec.hw_mgr_node_id}")

        # Hosts claimed by a pass that stopped before creating their Node.
        for bmh in await self.store.list(BareMetalHost, labels={BMH_NODEPOOL_LABEL: nodepool.metadata.name}):
            if bmh_key(bmh) not in released:
                await release_host(self.store, bmh.metadata.namespace, bmh.metadata.name)
        return True
