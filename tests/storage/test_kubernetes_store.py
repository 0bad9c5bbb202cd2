# tests/storage/test_kubernetes_store.py

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from kubernetes_asyncio.client.rest import ApiException

from hwmgr_plugin.core.exceptions import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    StoreError,
    TransientStoreError,
)
from hwmgr_plugin.models.meta import ConfigMap, ObjectMeta
from hwmgr_plugin.models.nodepool import NodePool
from hwmgr_plugin.storage.kubernetes_store import KubernetesResourceStore, translate_api_exception

NODEPOOL_RAW = {
    "apiVersion": "o2ims-hardwaremanagement.oran.openshift.io/v1alpha1",
    "kind": "NodePool",
    "metadata": {"name": "np1", "namespace": "ns", "resourceVersion": "7", "generation": 2},
    "spec": {"cloudID": "cloud-1", "hwMgrId": "hwmgr", "nodeGroup": []},
}


@pytest.mark.parametrize(
    "status, creating, expected",
    [
        (404, False, NotFoundError),
        (409, False, ConflictError),
        (409, True, AlreadyExistsError),
        (429, False, TransientStoreError),
        (503, False, TransientStoreError),
        (403, False, StoreError),
    ],
)
def test_translate_api_exception(status, creating, expected):
    error = translate_api_exception(ApiException(status=status, reason="x"), "NodePool ns/np1", creating=creating)
    assert type(error) is expected


@pytest.fixture
def custom_api():
    api = MagicMock()
    api.get_namespaced_custom_object = AsyncMock(return_value=NODEPOOL_RAW)
    api.list_namespaced_custom_object = AsyncMock(return_value={"items": [NODEPOOL_RAW]})
    api.replace_namespaced_custom_object_status = AsyncMock(return_value=NODEPOOL_RAW)
    api.create_namespaced_custom_object = AsyncMock(side_effect=ApiException(status=409, reason="AlreadyExists"))
    return api


@pytest.fixture
def k8s_store(custom_api):
    store = KubernetesResourceStore(api_client=MagicMock())
    with patch("hwmgr_plugin.storage.kubernetes_store.client.CustomObjectsApi", return_value=custom_api):
        yield store


@pytest.mark.asyncio
async def test_get_custom_object(k8s_store, custom_api):
    nodepool = await k8s_store.get(NodePool, "ns", "np1")

    custom_api.get_namespaced_custom_object.assert_awaited_once_with(
        "o2ims-hardwaremanagement.oran.openshift.io", "v1alpha1", "ns", "nodepools", "np1"
    )
    assert nodepool.spec.cloud_id == "cloud-1"
    assert nodepool.metadata.resource_version == "7"


@pytest.mark.asyncio
async def test_list_passes_label_selector(k8s_store, custom_api):
    items = await k8s_store.list(NodePool, namespace="ns", labels={"b": "2", "a": "1"})

    assert len(items) == 1
    assert custom_api.list_namespaced_custom_object.await_args.kwargs == {"label_selector": "a=1,b=2"}


@pytest.mark.asyncio
async def test_update_status_uses_status_subresource(k8s_store, custom_api):
    nodepool = NodePool.model_validate(NODEPOOL_RAW)

    await k8s_store.update_status(nodepool)

    args = custom_api.replace_namespaced_custom_object_status.await_args.args
    assert args[:5] == ("o2ims-hardwaremanagement.oran.openshift.io", "v1alpha1", "ns", "nodepools", "np1")
    assert args[5]["metadata"]["resourceVersion"] == "7"


@pytest.mark.asyncio
async def test_create_conflict_is_already_exists(k8s_store):
    with pytest.raises(AlreadyExistsError):
        await k8s_store.create(NodePool.model_validate(NODEPOOL_RAW))


@pytest.mark.asyncio
async def test_get_not_found(k8s_store, custom_api):
    custom_api.get_namespaced_custom_object.side_effect = ApiException(status=404, reason="NotFound")
    with pytest.raises(NotFoundError):
        await k8s_store.get(NodePool, "ns", "np1")


@pytest.mark.asyncio
async def test_core_kinds_use_core_api():
    core_api = MagicMock()
    core_api.read_namespaced_config_map = AsyncMock(
        return_value={"metadata": {"name": "cm", "namespace": "ns"}, "data": {"k": "v"}}
    )
    store = KubernetesResourceStore(api_client=MagicMock())

    with patch("hwmgr_plugin.storage.kubernetes_store.client.CoreV1Api", return_value=core_api):
        cm = await store.get(ConfigMap, "ns", "cm")

    core_api.read_namespaced_config_map.assert_awaited_once_with("cm", "ns")
    assert cm.data == {"k": "v"}


@pytest.mark.asyncio
async def test_core_kinds_have_no_status_subresource():
    store = KubernetesResourceStore(api_client=MagicMock())
    with pytest.raises(StoreError):
        await store.update_status(ConfigMap(metadata=ObjectMeta(name="cm", namespace="ns")))


@pytest.mark.asyncio
async def test_unconfigured_cluster_is_transient():
    store = KubernetesResourceStore()
    with patch("hwmgr_plugin.storage.kubernetes_store.get_api_client", AsyncMock(return_value=None)):
        with pytest.raises(TransientStoreError):
            await store.get(NodePool, "ns", "np1")


@pytest.mark.asyncio
async def test_close_releases_client():
    api_client = MagicMock()
    api_client.close = AsyncMock()
    store = KubernetesResourceStore(api_client=api_client)

    await store.close()

    api_client.close.assert_awaited_once()
