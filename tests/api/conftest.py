# tests/api/conftest.py
"""
Shared fixtures for API tests.
Uses FastAPI's TestClient with dependency overrides to inject a mock adaptor registry.
"""

from http import HTTPStatus
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from hwmgr_plugin.api.app import create_app
from hwmgr_plugin.api.dependencies import get_adaptor_registry
from hwmgr_plugin.models.hardware_manager import HardwareManager
from hwmgr_plugin.models.inventory import ResourceInfo, ResourcePoolInfo


@pytest.fixture
def hwmgr():
    return HardwareManager.model_validate(
        {"metadata": {"name": "hwmgr", "namespace": "hwmgr-test"}, "spec": {"adaptorId": "loopback"}}
    )


@pytest.fixture
def sample_pools():
    return [
        ResourcePoolInfo(resource_pool_id="master", name="master", description="master", site_id="n/a"),
        ResourcePoolInfo(resource_pool_id="worker", name="worker", description="worker", site_id="n/a"),
    ]


@pytest.fixture
def sample_resources():
    return [
        ResourceInfo(
            resource_id="dummy-master-0",
            resource_pool_id="master",
            name="dummy-master-0",
            description="Test node 0 in master",
            serial_number="SN0",
        ),
    ]


@pytest.fixture
def mock_registry(hwmgr, sample_pools, sample_resources):
    """Returns a mock AdaptorRegistry that knows one HardwareManager."""
    registry = MagicMock()
    registry.get_hardware_manager = AsyncMock(return_value=hwmgr)
    registry.adaptor_for = MagicMock()
    registry.get_resource_pools = AsyncMock(return_value=(sample_pools, HTTPStatus.OK, None))
    registry.get_resources = AsyncMock(return_value=(sample_resources, HTTPStatus.OK, None))
    return registry


@pytest.fixture
def client(mock_registry):
    """Creates a TestClient with the registry dependency overridden."""
    app = create_app()
    app.dependency_overrides[get_adaptor_registry] = lambda: mock_registry
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
