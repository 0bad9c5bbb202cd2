# tests/adaptors/conftest.py

import pytest

from hwmgr_plugin.models.metal3 import BareMetalHost

POOL_LABELS = {
    "resources.oran.openshift.io/resourcePoolId": "pool-a",
    "resources.oran.openshift.io/siteId": "site-1",
}


def _make_bmh(name="host-0", namespace="hosts", state="available", labels=None, annotations=None, **status):
    return BareMetalHost.model_validate(
        {
            "metadata": {
                "name": name,
                "namespace": namespace,
                "labels": dict(POOL_LABELS) if labels is None else labels,
                "annotations": annotations or {},
            },
            "spec": {"bmc": {"address": f"redfish://10.0.0.1/{name}", "credentialsName": f"{name}-bmc"}},
            "status": {
                "provisioning": {"state": state},
                "poweredOn": True,
                "hardwareDetails": {
                    "systemVendor": {"manufacturer": "Dell Inc.", "productName": "R750", "serialNumber": "SN123"},
                    "ramMebibytes": 65536,
                    "nics": [{"name": "eno1", "mac": "aa:bb:cc:00:00:01"}, {"name": "eno2", "mac": "aa:bb:cc:00:00:02"}],
                    "cpu": {"arch": "x86_64", "model": "Xeon", "count": 32},
                    "hostname": f"{name}.example.com",
                },
                **status,
            },
        }
    )


@pytest.fixture
def make_bmh():
    """Builder for BareMetalHosts in pool-a/site-1 with full hardware details."""
    return _make_bmh


@pytest.fixture
def make_pool_bmh():
    """Builder for pool-a hosts that also label eno1 as the bootable interface."""

    def _make(name, state="available", extra_labels=None):
        labels = dict(POOL_LABELS)
        labels["interfacelabel.oran.openshift.io/bootable-interface"] = "eno1"
        labels.update(extra_labels or {})
        return _make_bmh(name=name, state=state, labels=labels)

    return _make
