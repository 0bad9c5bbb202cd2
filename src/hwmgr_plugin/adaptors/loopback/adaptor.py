# src/hwmgr_plugin/adaptors/loopback/adaptor.py

import logging
from http import HTTPStatus
from typing import Dict, List

from ...core.config import config
from ...core.exceptions import AdaptorValidationError, AlreadyExistsError, NotFoundError, StoreError
from ...core.node_utils import create_node, get_child_nodes, set_node_provisioned, update_node_status
from ...core.nodepool_utils import update_nodepool_selected_pools
from ...core.results import ReconcileResult
from ...models.conditions import ConditionReason, ConditionStatus
from ...models.hardware_manager import AdaptorID, HardwareManager
from ...models.inventory import ResourceInfo, ResourcePoolInfo
from ...models.meta import ObjectMeta, Secret
from ...models.node import BMC, Node
from ...models.nodepool import NodePool
from ..base import HwMgrAdaptor, ResourcePoolsResult, ResourcesResult
from .inventory import (
    NodeInfo,
    allocate_nodes,
    get_allocated_nodes,
    get_current_resources,
    release_allocation,
    release_cloud,
)

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "n/a"


def bmc_secret_name(nodename: str) -> str:
    return f"{nodename}-bmc-secret"


class LoopbackAdaptor(HwMgrAdaptor):
    """
    Test double backend. Nodes are taken from a ConfigMap inventory and
    reported provisioned as soon as they are allocated.
    """

    adaptor_id = AdaptorID.LOOPBACK

    async def get_resource_pools(self, hwmgr: HardwareManager) -> ResourcePoolsResult:
        try:
            _, resources, _ = await get_current_resources(self.store)
        except StoreError as e:
            return [], HTTPStatus.SERVICE_UNAVAILABLE, e
        except AdaptorValidationError as e:
            return [], HTTPStatus.INTERNAL_SERVER_ERROR, e

        pools = [
            ResourcePoolInfo(resource_pool_id=pool, name=pool, description=pool, site_id=NOT_AVAILABLE)
            for pool in resources.resource_pools
        ]
        return pools, HTTPStatus.OK, None

    async def get_resources(self, hwmgr: HardwareManager) -> ResourcesResult:
        try:
            _, resources, _ = await get_current_resources(self.store)
        except StoreError as e:
            return [], HTTPStatus.SERVICE_UNAVAILABLE, e
        except AdaptorValidationError as e:
            return [], HTTPStatus.INTERNAL_SERVER_ERROR, e

        result = [
            ResourceInfo(
                resource_id=name,
                resource_pool_id=node.pool_id,
                name=name,
                description=node.description or NOT_AVAILABLE,
            )
            for name, node in sorted(resources.nodes.items())
        ]
        return result, HTTPStatus.OK, None

    async def _create_bmc_secret(self, nodepool: NodePool, nodename: str, info: NodeInfo) -> None:
        secret = Secret(
            metadata=ObjectMeta(
                name=bmc_secret_name(nodename),
                namespace=nodepool.metadata.namespace,
                owner_references=[nodepool.owner_reference()],
            ),
            data={
                "username": info.bmc.username_base64 if info.bmc else "",
                "password": info.bmc.password_base64 if info.bmc else "",
            },
        )
        try:
            await self.store.create(secret)
        except AlreadyExistsError:
            logger.debug(f"[loopback] BMC secret for {nodename} already exists")

    async def _ensure_node(self, nodepool: NodePool, group: str, hwprofile: str, nodename: str, info: NodeInfo):
        await self._create_bmc_secret(nodepool, nodename, info)
        await create_node(self.store, nodepool, nodename, group, hwprofile)

        def _set_status(node: Node):
            node.status.bmc = BMC(
                address=info.bmc.address if info.bmc else "",
                credentials_name=bmc_secret_name(nodename),
            )
            node.status.interfaces = [iface.model_copy() for iface in info.interfaces]
            node.status.hostname = info.hostname
            if not node.status.hw_profile:
                node.status.hw_profile = hwprofile
            set_node_provisioned(node, ConditionReason.COMPLETED, ConditionStatus.TRUE, "Provisioned")

        await update_node_status(self.store, nodepool.metadata.namespace, nodename, _set_status)

    async def _allocate_nodepool(self, nodepool: NodePool) -> Dict[str, List[str]]:
        """Allocates and creates the nodes of every group. Safe to re-run."""
        _, resources, _ = await get_current_resources(self.store)
        allocated = {}
        for group in nodepool.spec.node_group:
            data = group.node_pool_data
            names = await allocate_nodes(self.store, nodepool.cloud_id, data.name, data.resource_pool_id, group.size)
            for nodename in names:
                info = resources.nodes.get(nodename)
                if info is None:
                    raise AdaptorValidationError(f"node {nodename} allocated to group {data.name} is not in the inventory")
                await self._ensure_node(nodepool, data.name, data.hw_profile, nodename, info)
            allocated[data.name] = names
            nodepool.status.selected_pools[data.name] = data.resource_pool_id

        await update_nodepool_selected_pools(self.store, nodepool)
        return allocated

    async def handle_nodepool_create(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        allocated = await self._allocate_nodepool(nodepool)
        total = sum(len(names) for names in allocated.values())
        logger.info(f"[loopback] NodePool {nodepool.key()}: allocated {total} node(s)")
        return await self.start_provisioning(nodepool, "Creating nodes")

    async def handle_nodepool_processing(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        await self._allocate_nodepool(nodepool)
        nodes = await get_child_nodes(self.store, nodepool)
        # Loopback nodes have nothing to apply: any pending update is done at once.
        await self.apply_pending_configuration(nodes, lambda node: True)
        return await self.finish_provisioning(nodepool, nodes)

    async def handle_nodepool_spec_changed(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        current = await get_allocated_nodes(self.store, nodepool.cloud_id)
        for group in nodepool.spec.node_group:
            data = group.node_pool_data
            if group.size < len(current.get(data.name, [])):
                raise AdaptorValidationError(
                    f"scale-down of group {data.name} in nodepool {nodepool.metadata.name} is not supported"
                )

        await self._allocate_nodepool(nodepool)
        nodes = await get_child_nodes(self.store, nodepool)
        await self.request_profile_updates(nodepool, nodes)
        return await self.start_provisioning(nodepool, "Processing spec change")

    async def release_node(self, hwmgr: HardwareManager, nodepool: NodePool, nodename: str) -> None:
        """Returns a node to the free pool. Releasing a free node is a no-op."""
        try:
            await self.store.delete(Secret, nodepool.metadata.namespace or config.NAMESPACE, bmc_secret_name(nodename))
        except NotFoundError:
            pass
        if await release_allocation(self.store, nodepool.cloud_id, nodename):
            logger.info(f"[loopback] Released node {nodename} from cloud {nodepool.cloud_id}")

    async def handle_nodepool_deletion(self, hwmgr: HardwareManager, nodepool: NodePool) -> bool:
        logger.info(f"[loopback] Finalizing nodepool {nodepool.key()}")
        try:
            allocated = await get_allocated_nodes(self.store, nodepool.cloud_id)
        except NotFoundError:
            logger.warning(f"[loopback] Inventory configmap is gone, nothing to release for {nodepool.key()}")
            return True

        for names in allocated.values():
            for nodename in names:
                await self.release_node(hwmgr, nodepool, nodename)
        await release_cloud(self.store, nodepool.cloud_id)
        return True
