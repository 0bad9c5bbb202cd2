# src/hwmgr_plugin/adaptors/dell/adaptor.py

import logging
from http import HTTPStatus
from typing import Any, Dict, List

from ...core.exceptions import AdaptorError, AdaptorValidationError, BackendUnavailableError, NotFoundError
from ...core.node_utils import get_child_nodes, get_target_hw_profile
from ...core.nodepool_utils import get_resource_type_id, update_nodepool_selected_pools
from ...core.results import ReconcileResult, requeue_with_medium_interval
from ...models.hardware_manager import AdaptorID, HardwareManager
from ...models.node import Node
from ...models.nodepool import NodePool
from ..base import HwMgrAdaptor, ResourcePoolsResult, ResourcesResult
from .client import DellHwMgrClient
from .nodes import DellResource, allocate_node, get_resource_info, get_resource_pool_info

logger = logging.getLogger(__name__)

RG_STATUS_READY = "ready"
RG_STATUS_FAILED = "failed"


def _error_status(e: Exception) -> int:
    if isinstance(e, BackendUnavailableError):
        return HTTPStatus.SERVICE_UNAVAILABLE
    return HTTPStatus.INTERNAL_SERVER_ERROR


def resource_selectors(nodepool: NodePool) -> List[Dict[str, Any]]:
    return [
        {
            "name": group.node_pool_data.name,
            "resourcePoolId": group.node_pool_data.resource_pool_id,
            "resourceProfileId": group.node_pool_data.hw_profile,
            "numResources": group.size,
            "filters": dict(group.node_pool_data.resource_selector),
        }
        for group in nodepool.spec.node_group
    ]


def group_for_resource(nodepool: NodePool, resource: DellResource) -> str:
    for group in nodepool.spec.node_group:
        if group.node_pool_data.resource_pool_id == resource.resource_pool_id:
            return group.node_pool_data.name
    return resource.resource_pool_id


class DellHwMgrAdaptor(HwMgrAdaptor):
    """
    Vendor hardware manager backend. A NodePool maps to one resource group,
    named after the pool's cloud ID, which the backend fills asynchronously.
    """

    adaptor_id = AdaptorID.DELL

    def client(self, hwmgr: HardwareManager) -> DellHwMgrClient:
        return DellHwMgrClient(hwmgr, self.store)

    async def get_resource_pools(self, hwmgr: HardwareManager) -> ResourcePoolsResult:
        try:
            async with self.client(hwmgr) as api:
                pools = await api.get_resource_pools()
        except (AdaptorError, NotFoundError) as e:
            logger.warning(f"[dell-hwmgr] Unable to list resource pools of {hwmgr.metadata.name}: {e}")
            return [], _error_status(e), e
        return [get_resource_pool_info(pool) for pool in pools], HTTPStatus.OK, None

    async def get_resources(self, hwmgr: HardwareManager) -> ResourcesResult:
        try:
            async with self.client(hwmgr) as api:
                resources = await api.get_resources()
            result = [get_resource_info(DellResource.model_validate(res)) for res in resources]
        except (AdaptorError, NotFoundError) as e:
            logger.warning(f"[dell-hwmgr] Unable to list resources of {hwmgr.metadata.name}: {e}")
            return [], _error_status(e), e
        except ValueError as e:
            return [], HTTPStatus.INTERNAL_SERVER_ERROR, e
        return result, HTTPStatus.OK, None

    def _require_resource_type(self, nodepool: NodePool) -> str:
        resource_type_id = get_resource_type_id(nodepool)
        if not resource_type_id:
            raise AdaptorValidationError(
                f"nodepool {nodepool.metadata.name} is missing the resourceTypeId extension"
            )
        return resource_type_id

    async def _record_selected_pools(self, nodepool: NodePool) -> None:
        for group in nodepool.spec.node_group:
            nodepool.status.selected_pools[group.node_pool_data.name] = group.node_pool_data.resource_pool_id
        await update_nodepool_selected_pools(self.store, nodepool)

    async def handle_nodepool_create(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        resource_type_id = self._require_resource_type(nodepool)
        async with self.client(hwmgr) as api:
            try:
                await api.get_resource_group(nodepool.cloud_id)
                logger.info(f"[dell-hwmgr] Resource group {nodepool.cloud_id} already exists")
            except NotFoundError:
                await api.create_resource_group(nodepool.cloud_id, resource_selectors(nodepool), resource_type_id)
                logger.info(f"[dell-hwmgr] Requested resource group {nodepool.cloud_id}")

        await self._record_selected_pools(nodepool)
        return await self.start_provisioning(nodepool, "Creating nodes")

    async def handle_nodepool_processing(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        async with self.client(hwmgr) as api:
            try:
                rg = await api.get_resource_group(nodepool.cloud_id)
            except NotFoundError as e:
                raise AdaptorValidationError(f"resource group {nodepool.cloud_id} not found on backend") from e

        status = str(rg.get("status", "")).lower()
        if status == RG_STATUS_FAILED:
            raise AdaptorValidationError(f"resource group {nodepool.cloud_id} failed: {rg.get('message', '')}")
        if status != RG_STATUS_READY:
            logger.info(f"[dell-hwmgr] Resource group {nodepool.cloud_id} is {status or 'pending'}")
            return requeue_with_medium_interval()

        try:
            resources = [DellResource.model_validate(res) for res in rg.get("resources", [])]
        except ValueError as e:
            raise AdaptorValidationError(f"resource group {nodepool.cloud_id} holds malformed resources: {e}") from e

        profiles = {}
        for resource in resources:
            nodename = await allocate_node(self.store, nodepool, resource, group_for_resource(nodepool, resource))
            profiles[nodename] = resource.resource_profile_id

        nodes = await get_child_nodes(self.store, nodepool)

        def _profile_applied(node: Node) -> bool:
            return profiles.get(node.metadata.name) == get_target_hw_profile(node)

        await self.apply_pending_configuration(nodes, _profile_applied)
        return await self.finish_provisioning(nodepool)

    async def handle_nodepool_spec_changed(self, hwmgr: HardwareManager, nodepool: NodePool) -> ReconcileResult:
        resource_type_id = self._require_resource_type(nodepool)
        async with self.client(hwmgr) as api:
            try:
                await api.update_resource_group(nodepool.cloud_id, resource_selectors(nodepool))
            except NotFoundError:
                # The pool changed before its first request reached the backend.
                await api.create_resource_group(nodepool.cloud_id, resource_selectors(nodepool), resource_type_id)
                logger.info(f"[dell-hwmgr] Requested resource group {nodepool.cloud_id}")

        await self._record_selected_pools(nodepool)
        nodes = await get_child_nodes(self.store, nodepool)
        await self.request_profile_updates(nodepool, nodes)
        return await self.start_provisioning(nodepool, "Processing spec change")

    async def handle_nodepool_deletion(self, hwmgr: HardwareManager, nodepool: NodePool) -> bool:
        logger.info(f"[dell-hwmgr] Finalizing nodepool {nodepool.key()}")
        async with self.client(hwmgr) as api:
            if not await api.delete_resource_group(nodepool.cloud_id):
                logger.info(f"[dell-hwmgr] Resource group {nodepool.cloud_id} already released")
        return True
