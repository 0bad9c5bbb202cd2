# tests/adaptors/test_metal3_inventory.py

from hwmgr_plugin.adaptors.metal3.inventory import (
    get_interface_labels,
    get_resource_info,
    get_resource_info_groups,
    get_resource_info_tags,
    get_resource_pool_info,
    include_in_inventory,
)
from hwmgr_plugin.models.inventory import AdminState, PowerState, UsageState
from hwmgr_plugin.models.node import Node


def test_include_in_inventory_requires_pool_and_site_labels(make_bmh):
    assert include_in_inventory(make_bmh())
    assert not include_in_inventory(make_bmh(labels={"resources.oran.openshift.io/resourcePoolId": "pool-a"}))
    assert not include_in_inventory(make_bmh(labels={}))


def test_include_in_inventory_by_state(make_bmh):
    for state in ("available", "provisioning", "provisioned", "preparing"):
        assert include_in_inventory(make_bmh(state=state))
    for state in ("registering", "inspecting", "deprovisioning", ""):
        assert not include_in_inventory(make_bmh(state=state))


def test_interface_labels_map_nic_to_label(make_bmh):
    bmh = make_bmh(
        labels={
            "interfacelabel.oran.openshift.io/bootable-interface": "eno1",
            "interfacelabel.oran.openshift.io/data-interface": "eno2",
            "other": "eno3",
        }
    )
    assert get_interface_labels(bmh) == {"eno1": "bootable-interface", "eno2": "data-interface"}


def test_groups_annotation_split_on_commas(make_bmh):
    bmh = make_bmh(annotations={"resourceinfo.oran.openshift.io/groups": "rack-1 ,  rack-2,rack-3"})
    assert get_resource_info_groups(bmh) == ["rack-1", "rack-2", "rack-3"]
    assert get_resource_info_groups(make_bmh()) is None


def test_tags_from_resource_selector_labels(make_bmh):
    labels = {
        "resources.oran.openshift.io/resourcePoolId": "pool-a",
        "resourceselector.oran.openshift.io/server-type": "R750",
    }
    assert get_resource_info_tags(make_bmh(labels=labels)) == ["server-type: R750"]


def test_resource_info_projection(make_bmh):
    bmh = make_bmh(
        annotations={
            "resourceinfo.oran.openshift.io/description": "Compute node",
            "resourceinfo.oran.openshift.io/partNumber": "PN-1",
            "resourceinfo.oran.openshift.io/globalAssetId": "asset-1",
        }
    )
    node = Node.model_validate({"metadata": {"name": "hosts-host-0"}, "status": {"hwProfile": "profile-a"}})

    info = get_resource_info(bmh, node)

    assert info.resource_id == "hosts/host-0"
    assert info.resource_pool_id == "pool-a"
    assert info.name == "host-0"
    assert info.description == "Compute node"
    assert info.part_number == "PN-1"
    assert info.global_asset_id == "asset-1"
    assert info.hw_profile == "profile-a"
    assert info.memory == 65536
    assert info.model == "R750"
    assert info.vendor == "Dell Inc."
    assert info.serial_number == "SN123"
    assert info.power_state == PowerState.ON
    assert info.admin_state == AdminState.UNKNOWN
    assert info.usage_state == UsageState.UNKNOWN
    assert info.processors[0].cores == 32
    assert info.processors[0].architecture == "x86_64"


def test_resource_info_without_node_or_details(make_bmh):
    bmh = make_bmh(hardwareDetails=None, poweredOn=False)

    info = get_resource_info(bmh)

    assert info.hw_profile == ""
    assert info.memory == 0
    assert info.vendor == ""
    assert info.processors == []
    assert info.power_state == PowerState.OFF


def test_resource_info_serializes_camel_case(make_bmh):
    data = get_resource_info(make_bmh()).model_dump(by_alias=True)
    assert data["resourceId"] == "hosts/host-0"
    assert data["resourcePoolId"] == "pool-a"
    assert data["serialNumber"] == "SN123"


def test_resource_pool_info(make_bmh):
    pool = get_resource_pool_info(make_bmh())
    assert (pool.resource_pool_id, pool.name, pool.site_id) == ("pool-a", "pool-a", "site-1")
