# tests/adaptors/test_dell_adaptor.py

import base64
from http import HTTPStatus

import httpx
import pytest
import respx
from httpx import Response

from hwmgr_plugin.adaptors.dell import DellHwMgrAdaptor
from hwmgr_plugin.adaptors.dell.client import DellHwMgrClient
from hwmgr_plugin.adaptors.dell.nodes import DellResource, get_node_interfaces, validate_node_config
from hwmgr_plugin.adaptors.registry import AdaptorRegistry
from hwmgr_plugin.core.conditions import find_status_condition
from hwmgr_plugin.core.config import config
from hwmgr_plugin.core.exceptions import AdaptorValidationError, BackendUnavailableError
from hwmgr_plugin.core.node_utils import get_child_nodes
from hwmgr_plugin.core.reconciler import NodePoolReconciler
from hwmgr_plugin.models.conditions import ConditionReason, ConditionStatus, ConditionType
from hwmgr_plugin.models.hardware_manager import HardwareManager
from hwmgr_plugin.models.meta import ObjectMeta, Secret
from hwmgr_plugin.models.nodepool import NodePool

API_URL = "https://dell.example.com"
TOKEN_PATH = "/identity/v1/tenant/t1/token/create"
RG_PATH = "/inventory/v1/tenant/t1/resourcegroups"


def _b64(value):
    return base64.b64encode(value.encode()).decode()


def make_resource(resource_id="node-1", pool="pool-a", ip="10.1.1.1", with_nics=True):
    resource = {
        "id": resource_id,
        "name": f"server-{resource_id}",
        "description": "PowerEdge",
        "resourcePoolId": pool,
        "resourceProfileID": "profile-a",
        "resourceAttribute": {"compute": {"lom": {"ipAddress": ip, "password": f"{resource_id}-bmc"}}},
        "vendor": "Dell Inc.",
        "model": "R750",
        "serialNumber": f"SN-{resource_id}",
        "memory": 131072,
    }
    if with_nics:
        resource["extensions"] = {
            "O2-nics": {
                "nads": [
                    {
                        "model": "E810",
                        "name": "nic1",
                        "ports": [
                            {
                                "mac": "aa:bb:cc:00:00:01",
                                "mbps": 25000,
                                "Labels": [{"Key": "name", "Value": "eno1"}, {"Key": "label", "Value": "bootable"}],
                            },
                            {"mac": "aa:bb:cc:00:00:02", "mbps": 25000, "Labels": [{"Key": "label", "Value": "x"}]},
                        ],
                    }
                ]
            }
        }
    return resource


@pytest.fixture
async def dell_hwmgr(store, namespace):
    await store.create(
        Secret(
            metadata=ObjectMeta(name="dell-creds", namespace=namespace),
            data={"client-id": _b64("plugin"), "client-secret": _b64("s3cret")},
        )
    )
    return await store.create(
        HardwareManager.model_validate(
            {
                "metadata": {"name": "dell", "namespace": namespace},
                "spec": {
                    "adaptorId": "dell-hwmgr",
                    "dellData": {"apiUrl": API_URL, "authClientSecret": "dell-creds", "tenant": "t1"},
                },
            }
        )
    )


@pytest.fixture
def dell_api():
    with respx.mock(base_url=API_URL, assert_all_called=False) as mock:
        token = Response(200, json={"access_token": "tok", "expires_in": 3600})
        mock.post(TOKEN_PATH, name="token").mock(return_value=token)
        yield mock


@pytest.fixture
def reconciler(store):
    return NodePoolReconciler(store, AdaptorRegistry(store, [DellHwMgrAdaptor(store)]))


@pytest.fixture
async def dell_nodepool(store, make_nodepool):
    return await store.create(
        make_nodepool(
            hw_mgr_id="dell",
            groups=[("controller", "pool-a", 2, "profile-a")],
            extensions={"resourceTypeId": "rt-1"},
        )
    )


def _provisioned(nodepool):
    return find_status_condition(nodepool.status.conditions, ConditionType.PROVISIONED)


def test_node_interfaces_skip_unnamed_ports():
    interfaces = get_node_interfaces(DellResource.model_validate(make_resource()))

    assert [(i.name, i.label, i.mac_address) for i in interfaces] == [("eno1", "bootable", "aa:bb:cc:00:00:01")]


def test_validate_node_config_requires_lom_and_nics():
    validate_node_config(DellResource.model_validate(make_resource()))

    with pytest.raises(AdaptorValidationError, match="invalid interface list"):
        validate_node_config(DellResource.model_validate(make_resource(with_nics=False)))

    broken = make_resource()
    broken["resourceAttribute"]["compute"]["lom"] = {"ipAddress": "10.1.1.1"}
    with pytest.raises(AdaptorValidationError, match="missing required resource attribute"):
        validate_node_config(DellResource.model_validate(broken))


@pytest.mark.asyncio
async def test_client_caches_token(store, dell_hwmgr, dell_api):
    pools = dell_api.get("/inventory/v1/tenant/t1/resourcepools").mock(
        return_value=Response(200, json={"resourcePools": []})
    )

    async with DellHwMgrClient(dell_hwmgr, store) as client:
        await client.get_resource_pools()
        await client.get_resource_pools()

    assert dell_api.routes["token"].call_count == 1
    assert pools.call_count == 2
    assert pools.calls.last.request.headers["Authorization"] == "Bearer tok"
    token_form = dell_api.routes["token"].calls.last.request.content.decode()
    assert "client_id=plugin" in token_form
    assert "grant_type=client_credentials" in token_form


@pytest.mark.asyncio
async def test_client_error_mapping(store, dell_hwmgr, dell_api):
    route = dell_api.get(f"{RG_PATH}/np1")

    async with DellHwMgrClient(dell_hwmgr, store) as client:
        route.mock(return_value=Response(503))
        with pytest.raises(BackendUnavailableError):
            await client.get_resource_group("np1")

        route.mock(return_value=Response(400, text="bad selector"))
        with pytest.raises(AdaptorValidationError, match="bad selector"):
            await client.get_resource_group("np1")

        route.mock(side_effect=httpx.ConnectError("connection refused"))
        with pytest.raises(BackendUnavailableError):
            await client.get_resource_group("np1")


@pytest.mark.asyncio
async def test_client_without_credentials_secret(store, dell_hwmgr, namespace, dell_api):
    await store.delete(Secret, namespace, "dell-creds")

    async with DellHwMgrClient(dell_hwmgr, store) as client:
        with pytest.raises(AdaptorValidationError, match="dell-creds"):
            await client.get_resources()


@pytest.mark.asyncio
async def test_inventory(store, dell_hwmgr, dell_api):
    dell_api.get("/inventory/v1/tenant/t1/resourcepools").mock(
        return_value=Response(
            200, json={"resourcePools": [{"id": "pool-a", "name": "Pool A", "description": "d", "siteId": "s1"}]}
        )
    )
    dell_api.get("/inventory/v1/tenant/t1/resources").mock(
        return_value=Response(200, json={"resources": [make_resource()]})
    )
    adaptor = DellHwMgrAdaptor(store)

    pools, status, _ = await adaptor.get_resource_pools(dell_hwmgr)
    resources, _, _ = await adaptor.get_resources(dell_hwmgr)

    assert status == HTTPStatus.OK
    assert (pools[0].resource_pool_id, pools[0].name, pools[0].site_id) == ("pool-a", "Pool A", "s1")
    assert resources[0].resource_id == "node-1"
    assert resources[0].hw_profile == "profile-a"
    assert resources[0].serial_number == "SN-node-1"


@pytest.mark.asyncio
async def test_inventory_backend_down_is_503(store, dell_hwmgr, dell_api):
    dell_api.get("/inventory/v1/tenant/t1/resourcepools").mock(return_value=Response(502))

    pools, status, error = await DellHwMgrAdaptor(store).get_resource_pools(dell_hwmgr)

    assert pools == []
    assert status == HTTPStatus.SERVICE_UNAVAILABLE
    assert isinstance(error, BackendUnavailableError)


@pytest.mark.asyncio
async def test_provisioning_through_resource_group(store, reconciler, dell_hwmgr, dell_nodepool, dell_api):
    group = dell_api.get(f"{RG_PATH}/np1").mock(return_value=Response(404))
    create = dell_api.post(RG_PATH).mock(return_value=Response(201, json={"name": "np1"}))

    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    assert create.call_count == 1
    stored = await store.get(NodePool, dell_nodepool.namespace, dell_nodepool.name)
    assert _provisioned(stored).reason == ConditionReason.IN_PROGRESS.value

    # Backend still working on the group
    group.mock(return_value=Response(200, json={"status": "inProgress"}))
    result = await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)
    assert result.requeue_after == config.REQUEUE_MEDIUM_SECONDS

    ready = {"status": "ready", "resources": [make_resource("node-1"), make_resource("node-2", ip="10.1.1.2")]}
    group.mock(return_value=Response(200, json=ready))
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    stored = await store.get(NodePool, dell_nodepool.namespace, dell_nodepool.name)
    assert _provisioned(stored).status == ConditionStatus.TRUE
    nodes = await get_child_nodes(store, stored)
    assert [n.metadata.name for n in nodes] == ["node-1", "node-2"]
    assert nodes[0].spec.group_name == "controller"
    assert nodes[0].status.bmc.address == "idrac-virtualmedia+https://10.1.1.1/redfish/v1/Systems/System.Embedded.1"
    assert nodes[0].status.bmc.credentials_name == "node-1-bmc"
    assert nodes[0].status.interfaces[0].name == "eno1"


@pytest.mark.asyncio
async def test_missing_resource_type_fails(store, reconciler, dell_hwmgr, make_nodepool, dell_api):
    nodepool = await store.create(make_nodepool(hw_mgr_id="dell"))

    await reconciler.reconcile(nodepool.namespace, nodepool.name)

    stored = await store.get(NodePool, nodepool.namespace, nodepool.name)
    assert _provisioned(stored).reason == ConditionReason.FAILED.value
    assert "resourceTypeId" in _provisioned(stored).message


@pytest.mark.asyncio
async def test_unreachable_backend_keeps_nodepool_in_progress(store, reconciler, dell_hwmgr, dell_nodepool, dell_api):
    dell_api.get(f"{RG_PATH}/np1").mock(return_value=Response(503))

    result = await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    assert result.requeue_after == config.REQUEUE_SHORT_SECONDS
    provisioned = _provisioned(await store.get(NodePool, dell_nodepool.namespace, dell_nodepool.name))
    assert provisioned.reason == ConditionReason.IN_PROGRESS.value
    assert "unavailable" in provisioned.message


@pytest.mark.asyncio
async def test_failed_resource_group_fails_nodepool(store, reconciler, dell_hwmgr, dell_nodepool, dell_api):
    group = dell_api.get(f"{RG_PATH}/np1").mock(return_value=Response(404))
    dell_api.post(RG_PATH).mock(return_value=Response(201, json={}))
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    group.mock(
        return_value=Response(200, json={"status": "failed", "message": "no capacity"})
    )
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    provisioned = _provisioned(await store.get(NodePool, dell_nodepool.namespace, dell_nodepool.name))
    assert provisioned.reason == ConditionReason.FAILED.value
    assert "no capacity" in provisioned.message


@pytest.mark.asyncio
async def test_deletion_tolerates_released_group(store, reconciler, dell_hwmgr, dell_nodepool, dell_api):
    dell_api.get(f"{RG_PATH}/np1").mock(return_value=Response(404))
    dell_api.post(RG_PATH).mock(return_value=Response(201, json={}))
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)
    delete = dell_api.delete(f"{RG_PATH}/np1").mock(return_value=Response(404))

    await store.delete(NodePool, dell_nodepool.namespace, dell_nodepool.name)
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    assert delete.call_count == 1
    assert await store.list(NodePool) == []


@pytest.mark.asyncio
async def test_spec_change_before_group_exists_creates_it(store, reconciler, dell_hwmgr, dell_nodepool, dell_api):
    dell_api.get(f"{RG_PATH}/np1").mock(return_value=Response(503))
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    stored = await store.get(NodePool, dell_nodepool.namespace, dell_nodepool.name)
    stored.spec.node_group[0].size = 3
    await store.update(stored)
    update = dell_api.put(f"{RG_PATH}/np1").mock(return_value=Response(404))
    create = dell_api.post(RG_PATH).mock(return_value=Response(201, json={"name": "np1"}))

    result = await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    assert result.requeue_after == config.REQUEUE_SHORT_SECONDS
    assert update.call_count == 1
    assert create.call_count == 1
    stored = await store.get(NodePool, dell_nodepool.namespace, dell_nodepool.name)
    assert _provisioned(stored).reason == ConditionReason.IN_PROGRESS.value
    assert stored.status.hw_mgr_plugin.observed_generation == 2
    assert stored.status.selected_pools == {"controller": "pool-a"}


@pytest.mark.asyncio
async def test_profile_change_waits_for_backend(store, reconciler, dell_hwmgr, dell_nodepool, dell_api):
    group = dell_api.get(f"{RG_PATH}/np1").mock(return_value=Response(404))
    dell_api.post(RG_PATH).mock(return_value=Response(201, json={}))
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)
    resources = [make_resource("node-1"), make_resource("node-2", ip="10.1.1.2")]
    group.mock(return_value=Response(200, json={"status": "ready", "resources": resources}))
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    stored = await store.get(NodePool, dell_nodepool.namespace, dell_nodepool.name)
    stored.spec.node_group[0].node_pool_data.hw_profile = "profile-b"
    await store.update(stored)
    update = dell_api.put(f"{RG_PATH}/np1").mock(return_value=Response(200, json={}))
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)
    assert update.call_count == 1

    # Backend still reports the old profile
    result = await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)
    assert result.requeue_after == config.REQUEUE_SHORT_SECONDS
    stored = await store.get(NodePool, dell_nodepool.namespace, dell_nodepool.name)
    configured = find_status_condition(stored.status.conditions, ConditionType.CONFIGURED)
    assert configured.status == ConditionStatus.FALSE

    for resource in resources:
        resource["resourceProfileID"] = "profile-b"
    group.mock(return_value=Response(200, json={"status": "ready", "resources": resources}))
    await reconciler.reconcile(dell_nodepool.namespace, dell_nodepool.name)

    stored = await store.get(NodePool, dell_nodepool.namespace, dell_nodepool.name)
    assert _provisioned(stored).status == ConditionStatus.TRUE
    for node in await get_child_nodes(store, stored):
        assert node.spec.hw_profile == "profile-a"
        assert node.status.hw_profile == "profile-b"
