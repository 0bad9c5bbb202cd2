# tests/conftest.py

import json

import pytest

from hwmgr_plugin.core import factory
from hwmgr_plugin.models.hardware_manager import HardwareManager
from hwmgr_plugin.models.meta import ConfigMap, ObjectMeta
from hwmgr_plugin.models.nodepool import NodeGroup, NodePool, NodePoolData, NodePoolSpec
from hwmgr_plugin.storage.memory_store import InMemoryResourceStore

TEST_NAMESPACE = "hwmgr-test"


@pytest.fixture(autouse=True)
def mock_settings_env_vars(monkeypatch):
    """
    Runs for every test so the config resolves to an isolated namespace and
    the factories never try to reach a cluster.
    """
    monkeypatch.setenv("HWMGR_PLUGIN_NAMESPACE", TEST_NAMESPACE)
    monkeypatch.setenv("STORE_TYPE", "memory")


@pytest.fixture(autouse=True)
def clear_factory_caches():
    yield
    factory.get_store.cache_clear()
    factory.get_adaptor_registry.cache_clear()
    factory.get_reconciler.cache_clear()


@pytest.fixture
def namespace():
    return TEST_NAMESPACE


@pytest.fixture
def store():
    return InMemoryResourceStore()


@pytest.fixture
def make_nodepool():
    """
    Returns a builder for NodePool objects. Groups are (name, pool, size, profile) tuples.
    """

    def _make(name="np1", groups=None, hw_mgr_id="hwmgr", cloud_id=None, extensions=None):
        groups = groups if groups is not None else [("controller", "master", 1, "profile-a")]
        return NodePool(
            metadata=ObjectMeta(name=name, namespace=TEST_NAMESPACE),
            spec=NodePoolSpec(
                cloud_id=cloud_id or name,
                hw_mgr_id=hw_mgr_id,
                node_group=[
                    NodeGroup(
                        node_pool_data=NodePoolData(name=group, hw_profile=profile, resource_pool_id=pool),
                        size=size,
                    )
                    for group, pool, size, profile in groups
                ],
                extensions=extensions or {},
            ),
        )

    return _make


def loopback_node(pool, index):
    return {
        "poolID": pool,
        "description": f"Test node {index} in {pool}",
        "hostname": f"{pool}-{index}.example.com",
        "bmc": {
            "address": f"idrac-virtualmedia+https://192.168.2.{index}/redfish/v1/Systems/System.Embedded.1",
            "username-base64": "YWRtaW4=",
            "password-base64": "cGFzc3dvcmQ=",
        },
        "interfaces": [
            {"name": "eno1", "label": "bootable-interface", "macAddress": f"c6:b6:13:a0:02:{index:02d}"},
        ],
    }


@pytest.fixture
def loopback_inventory():
    """The resources document of the loopback ConfigMap: 3 master and 3 worker nodes."""
    nodes = {}
    for index in range(3):
        nodes[f"dummy-master-{index}"] = loopback_node("master", index)
        nodes[f"dummy-worker-{index}"] = loopback_node("worker", index + 10)
    return {"resourcepools": ["master", "worker"], "nodes": nodes}


@pytest.fixture
async def loopback_hwmgr(store, loopback_inventory):
    """Stores the loopback inventory ConfigMap and a HardwareManager pointing at it."""
    await store.create(
        ConfigMap(
            metadata=ObjectMeta(name="loopback-adaptor-nodelist", namespace=TEST_NAMESPACE),
            data={"resources": json.dumps(loopback_inventory)},
        )
    )
    return await store.create(
        HardwareManager.model_validate(
            {
                "metadata": {"name": "hwmgr", "namespace": TEST_NAMESPACE},
                "spec": {"adaptorId": "loopback", "loopbackData": {"additionalInfo": "test"}},
            }
        )
    )
