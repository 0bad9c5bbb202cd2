# tests/core/test_node_utils.py

import pytest

from hwmgr_plugin.core.conditions import find_status_condition
from hwmgr_plugin.core.node_utils import (
    NODE_CONFIG_ANNOTATION,
    create_node,
    get_child_nodes,
    get_node,
    get_target_hw_profile,
    set_node_config_applied,
    set_node_provisioned,
    set_nodes_configuring,
    update_node_status,
)
from hwmgr_plugin.models.conditions import ConditionReason, ConditionStatus, ConditionType
from hwmgr_plugin.models.meta import ObjectMeta
from hwmgr_plugin.models.node import Node


@pytest.fixture
async def nodepool(store, make_nodepool):
    return await store.create(make_nodepool())


@pytest.mark.asyncio
async def test_create_node_is_owned_by_nodepool(store, nodepool):
    node = await create_node(store, nodepool, "node-a", "controller", "profile-a", hw_mgr_node_id="bmh-a")

    assert node.metadata.namespace == nodepool.metadata.namespace
    assert node.is_owned_by(nodepool)
    assert node.spec.node_pool == nodepool.cloud_id
    assert node.spec.group_name == "controller"
    assert node.spec.hw_profile == "profile-a"
    assert node.spec.hw_mgr_id == "hwmgr"
    assert node.spec.hw_mgr_node_id == "bmh-a"


@pytest.mark.asyncio
async def test_create_node_is_idempotent(store, nodepool):
    first = await create_node(store, nodepool, "node-a", "controller", "profile-a")
    second = await create_node(store, nodepool, "node-a", "controller", "profile-b")

    assert second.metadata.uid == first.metadata.uid
    assert second.spec.hw_profile == "profile-a"


@pytest.mark.asyncio
async def test_get_child_nodes_filters_by_owner(store, nodepool, make_nodepool):
    other = await store.create(make_nodepool(name="np2"))
    await create_node(store, nodepool, "node-b", "controller", "p")
    await create_node(store, nodepool, "node-a", "controller", "p")
    await create_node(store, other, "node-c", "controller", "p")
    await store.create(Node(metadata=ObjectMeta(name="orphan", namespace=nodepool.namespace)))

    children = await get_child_nodes(store, nodepool)

    assert [n.metadata.name for n in children] == ["node-a", "node-b"]


@pytest.mark.asyncio
async def test_get_node_missing_returns_none(store, namespace):
    assert await get_node(store, namespace, "nope") is None


def test_set_node_provisioned_is_monotonic():
    node = Node(metadata=ObjectMeta(name="n"))
    assert set_node_provisioned(node, ConditionReason.IN_PROGRESS, ConditionStatus.FALSE, "working")
    assert set_node_provisioned(node, ConditionReason.COMPLETED, ConditionStatus.TRUE, "Provisioned")
    assert not set_node_provisioned(node, ConditionReason.IN_PROGRESS, ConditionStatus.FALSE, "again")

    condition = find_status_condition(node.status.conditions, ConditionType.PROVISIONED)
    assert condition.reason == "Completed"
    assert condition.status == ConditionStatus.TRUE


@pytest.mark.asyncio
async def test_update_node_status_persists_mutation(store, nodepool):
    await create_node(store, nodepool, "node-a", "controller", "p")

    def _mutate(node):
        node.status.hostname = "node-a.example.com"

    await update_node_status(store, nodepool.namespace, "node-a", _mutate)

    stored = await get_node(store, nodepool.namespace, "node-a")
    assert stored.status.hostname == "node-a.example.com"


@pytest.mark.asyncio
async def test_configuring_then_applied(store, nodepool):
    node = await create_node(store, nodepool, "node-a", "controller", "profile-a")

    await set_nodes_configuring(store, [node], "profile-b")
    stored = await get_node(store, nodepool.namespace, "node-a")
    condition = find_status_condition(stored.status.conditions, ConditionType.CONFIGURED)
    assert stored.spec.hw_profile == "profile-a"
    assert stored.metadata.annotations[NODE_CONFIG_ANNOTATION] == "profile-b"
    assert stored.metadata.generation == 1
    assert get_target_hw_profile(stored) == "profile-b"
    assert condition.reason == ConditionReason.CONFIG_UPDATE.value
    assert condition.status == ConditionStatus.FALSE
    assert condition.message == "Update requested to hardware profile profile-b"

    await set_node_config_applied(store, stored)
    stored = await get_node(store, nodepool.namespace, "node-a")
    condition = find_status_condition(stored.status.conditions, ConditionType.CONFIGURED)
    assert stored.status.hw_profile == "profile-b"
    assert condition.reason == ConditionReason.CONFIG_APPLIED.value
    assert condition.status == ConditionStatus.TRUE
    assert stored.spec.hw_profile == "profile-a"
    assert NODE_CONFIG_ANNOTATION not in stored.metadata.annotations


@pytest.mark.asyncio
async def test_target_profile_prefers_pending_then_status(store, nodepool):
    node = await create_node(store, nodepool, "node-a", "controller", "profile-a")
    assert get_target_hw_profile(node) == "profile-a"

    def _running(fresh: Node):
        fresh.status.hw_profile = "profile-b"

    running = await update_node_status(store, nodepool.namespace, "node-a", _running)
    assert get_target_hw_profile(running) == "profile-b"

    await set_nodes_configuring(store, [running], "profile-c")
    pending = await get_node(store, nodepool.namespace, "node-a")
    assert get_target_hw_profile(pending) == "profile-c"
    assert pending.status.hw_profile == "profile-b"
