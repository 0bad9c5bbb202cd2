# src/hwmgr_plugin/adaptors/loopback/inventory.py
"""
Bookkeeping for the loopback adaptor.

The loopback backend has no hardware behind it: its inventory is a
ConfigMap in the plugin namespace. The `resources` key lists the pools and
the fake nodes (with BMC details and interfaces); the `allocations` key
records, per cloud and per node group, which nodes are in use. Both values
are JSON documents.
"""

import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ...core.config import config
from ...core.exceptions import AdaptorValidationError
from ...core.retry import retry_on_conflict
from ...models.meta import ConfigMap
from ...models.node import Interface
from ...storage.base_store import ResourceStore

logger = logging.getLogger(__name__)

RESOURCES_KEY = "resources"
ALLOCATIONS_KEY = "allocations"


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BmcInfo(_Document):
    address: str = ""
    username_base64: str = Field("", alias="username-base64")
    password_base64: str = Field("", alias="password-base64")


class NodeInfo(_Document):
    pool_id: str = Field(..., alias="poolID")
    description: str = ""
    hostname: str = ""
    bmc: Optional[BmcInfo] = None
    interfaces: List[Interface] = Field(default_factory=list)


class LoopbackResources(_Document):
    resource_pools: List[str] = Field(default_factory=list, alias="resourcepools")
    nodes: Dict[str, NodeInfo] = Field(default_factory=dict)


class AllocatedCloud(_Document):
    cloud_id: str = Field(..., alias="cloudID")
    nodegroups: Dict[str, List[str]] = Field(default_factory=dict)


class LoopbackAllocations(_Document):
    clouds: List[AllocatedCloud] = Field(default_factory=list)

    def find_cloud(self, cloud_id: str) -> Optional[AllocatedCloud]:
        for cloud in self.clouds:
            if cloud.cloud_id == cloud_id:
                return cloud
        return None

    def allocated_nodes(self) -> set:
        return {name for cloud in self.clouds for names in cloud.nodegroups.values() for name in names}


def _dump(document: _Document) -> str:
    return document.model_dump_json(by_alias=True)


async def get_current_resources(
    store: ResourceStore, namespace: Optional[str] = None
) -> Tuple[ConfigMap, LoopbackResources, LoopbackAllocations]:
    """
    Reads and parses the inventory ConfigMap.

    Raises:
        NotFoundError: If the ConfigMap does not exist.
        AdaptorValidationError: If either document cannot be parsed.
    """
    namespace = namespace or config.NAMESPACE
    cm = await store.get(ConfigMap, namespace, config.LOOPBACK_CONFIGMAP_NAME)
    try:
        resources = LoopbackResources.model_validate_json(cm.data.get(RESOURCES_KEY) or "{}")
        allocations = LoopbackAllocations.model_validate_json(cm.data.get(ALLOCATIONS_KEY) or "{}")
    except ValueError as e:
        raise AdaptorValidationError(f"unable to parse configmap {cm.key()}: {e}") from e
    return cm, resources, allocations


async def get_allocated_nodes(store: ResourceStore, cloud_id: str) -> Dict[str, List[str]]:
    """Returns the nodes allocated to the cloud, by node group."""
    _, _, allocations = await get_current_resources(store)
    cloud = allocations.find_cloud(cloud_id)
    if cloud is None:
        return {}
    return {group: list(names) for group, names in cloud.nodegroups.items()}


async def allocate_nodes(store: ResourceStore, cloud_id: str, group: str, pool_id: str, size: int) -> List[str]:
    """
    Tops the group's allocation up to size nodes from the pool's free nodes.

    Returns every node allocated to the group, old and new.

    Raises:
        AdaptorValidationError: If the pool does not hold enough free nodes.
    """

    async def _apply():
        cm, resources, allocations = await get_current_resources(store)
        cloud = allocations.find_cloud(cloud_id)
        if cloud is None:
            cloud = AllocatedCloud(cloud_id=cloud_id)
            allocations.clouds.append(cloud)
        allocated = cloud.nodegroups.setdefault(group, [])
        if len(allocated) >= size:
            return list(allocated)

        in_use = allocations.allocated_nodes()
        free = sorted(name for name, node in resources.nodes.items() if node.pool_id == pool_id and name not in in_use)
        needed = size - len(allocated)
        if len(free) < needed:
            raise AdaptorValidationError(
                f"insufficient free resources in pool {pool_id} for group {group}: need {needed}, have {len(free)}"
            )

        allocated.extend(free[:needed])
        cm.data[ALLOCATIONS_KEY] = _dump(allocations)
        await store.update(cm)
        logger.info(f"[loopback] Allocated {free[:needed]} to cloud {cloud_id} group {group}")
        return list(allocated)

    return await retry_on_conflict(_apply)


async def release_allocation(store: ResourceStore, cloud_id: str, nodename: str) -> bool:
    """Removes the node from the cloud's allocation. Returns False if it was not allocated."""

    async def _apply():
        cm, _, allocations = await get_current_resources(store)
        cloud = allocations.find_cloud(cloud_id)
        if cloud is None:
            return False

        released = False
        for group, names in cloud.nodegroups.items():
            if nodename in names:
                cloud.nodegroups[group] = [name for name in names if name != nodename]
                released = True
        if not any(cloud.nodegroups.values()):
            allocations.clouds = [c for c in allocations.clouds if c.cloud_id != cloud_id]
        if not released:
            return False

        cm.data[ALLOCATIONS_KEY] = _dump(allocations)
        await store.update(cm)
        return True

    return await retry_on_conflict(_apply)


async def release_cloud(store: ResourceStore, cloud_id: str) -> None:
    """Drops the cloud's allocation record entirely."""

    async def _apply():
        cm, _, allocations = await get_current_resources(store)
        if allocations.find_cloud(cloud_id) is None:
            return
        allocations.clouds = [c for c in allocations.clouds if c.cloud_id != cloud_id]
        cm.data[ALLOCATIONS_KEY] = _dump(allocations)
        await store.update(cm)

    await retry_on_conflict(_apply)
