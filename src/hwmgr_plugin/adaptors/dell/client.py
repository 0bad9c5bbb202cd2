# src/hwmgr_plugin/adaptors/dell/client.py
"""
Async client for the vendor hardware manager REST API.

Authentication is OAuth2 client credentials against the tenant's token
endpoint; the token is cached until shortly before it expires. Transport
failures are reported as BackendUnavailableError so callers can tell an
unreachable backend apart from a rejected request.
"""

import base64
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ...core.config import config
from ...core.exceptions import AdaptorError, AdaptorValidationError, BackendUnavailableError, NotFoundError
from ...models.hardware_manager import DellData, HardwareManager
from ...models.meta import Secret
from ...storage.base_store import ResourceStore
from ...utils.http_client import get_async_http_client

logger = logging.getLogger(__name__)

TOKEN_PATH = "/identity/v1/tenant/{tenant}/token/create"
RESOURCE_POOLS_PATH = "/inventory/v1/tenant/{tenant}/resourcepools"
RESOURCES_PATH = "/inventory/v1/tenant/{tenant}/resources"
RESOURCE_GROUPS_PATH = "/inventory/v1/tenant/{tenant}/resourcegroups"

CLIENT_ID_KEY = "client-id"
CLIENT_SECRET_KEY = "client-secret"

# Refresh the token this many seconds before the backend expires it.
TOKEN_EXPIRY_MARGIN = 30


def _decode(value: str) -> str:
    return base64.b64decode(value).decode("utf-8")


class DellHwMgrClient:
    """Thin wrapper over the vendor REST API for one HardwareManager."""

    def __init__(self, hwmgr: HardwareManager, store: ResourceStore):
        if hwmgr.spec.dell_data is None or not hwmgr.spec.dell_data.api_url:
            raise AdaptorValidationError(f"hardware manager {hwmgr.metadata.name} has no dellData.apiUrl")
        self.hwmgr_name = hwmgr.metadata.name
        self.data: DellData = hwmgr.spec.dell_data
        self.store = store
        self._token: Optional[str] = None
        self._token_expiry = 0.0
        self._client = get_async_http_client(
            base_url=self.data.api_url.rstrip("/"),
            verify=not self.data.insecure_skip_tls_verify,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self._client.aclose()

    def _path(self, template: str) -> str:
        return template.format(tenant=self.data.tenant)

    async def _credentials(self) -> Dict[str, str]:
        if not self.data.auth_client_secret:
            if not config.DELL_CLIENT_ID or not config.DELL_CLIENT_SECRET:
                raise AdaptorValidationError(f"hardware manager {self.hwmgr_name} has no client credentials configured")
            return {"client_id": config.DELL_CLIENT_ID, "client_secret": config.DELL_CLIENT_SECRET}

        try:
            secret = await self.store.get(Secret, config.NAMESPACE, self.data.auth_client_secret)
        except NotFoundError as e:
            raise AdaptorValidationError(
                f"auth secret {self.data.auth_client_secret} for hardware manager {self.hwmgr_name} not found"
            ) from e

        missing = [key for key in (CLIENT_ID_KEY, CLIENT_SECRET_KEY) if key not in secret.data]
        if missing:
            raise AdaptorValidationError(f"auth secret {secret.metadata.name} is missing keys: {', '.join(missing)}")
        return {
            "client_id": _decode(secret.data[CLIENT_ID_KEY]),
            "client_secret": _decode(secret.data[CLIENT_SECRET_KEY]),
        }

    async def _get_token(self) -> str:
        if self._token and time.monotonic() < self._token_expiry:
            return self._token

        credentials = await self._credentials()
        payload = {"grant_type": "client_credentials", **credentials}
        body = await self._send("POST", self._path(TOKEN_PATH), "create token", data=payload, authenticated=False)
        token = body.get("access_token")
        if not token:
            raise AdaptorError(f"token response from {self.hwmgr_name} carries no access_token")
        self._token = token
        self._token_expiry = time.monotonic() + max(int(body.get("expires_in", 300)) - TOKEN_EXPIRY_MARGIN, 0)
        logger.debug(f"[dell-hwmgr] Obtained API token for {self.hwmgr_name}")
        return token

    async def _send(self, method: str, path: str, operation: str, authenticated: bool = True, **kwargs) -> Any:
        headers = {}
        if authenticated:
            headers["Authorization"] = f"Bearer {await self._get_token()}"
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise BackendUnavailableError(f"{operation}: hardware manager {self.hwmgr_name} unreachable: {e}") from e
        except httpx.RequestError as e:
            raise AdaptorError(f"{operation}: request to hardware manager {self.hwmgr_name} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"{operation}: not found")
        if response.status_code in (502, 503, 504):
            raise BackendUnavailableError(
                f"{operation}: hardware manager {self.hwmgr_name} unavailable ({response.status_code})"
            )
        if response.status_code in (400, 422):
            raise AdaptorValidationError(f"{operation}: rejected by hardware manager: {response.text}")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AdaptorError(f"{operation}: hardware manager returned {response.status_code}: {response.text}") from e

        if not response.content:
            return {}
        return response.json()

    async def get_resource_pools(self) -> List[Dict[str, Any]]:
        body = await self._send("GET", self._path(RESOURCE_POOLS_PATH), "list resource pools")
        return body.get("resourcePools", [])

    async def get_resources(self) -> List[Dict[str, Any]]:
        body = await self._send("GET", self._path(RESOURCES_PATH), "list resources")
        return body.get("resources", [])

    async def create_resource_group(self, name: str, groups: List[Dict[str, Any]], resource_type_id: str) -> Dict[str, Any]:
        payload = {"name": name, "resourceTypeId": resource_type_id, "resourceSelectors": groups}
        return await self._send(
            "POST", self._path(RESOURCE_GROUPS_PATH), f"create resource group {name}", json=payload
        )

    async def update_resource_group(self, name: str, groups: List[Dict[str, Any]]) -> Dict[str, Any]:
        payload = {"resourceSelectors": groups}
        return await self._send(
            "PUT", f"{self._path(RESOURCE_GROUPS_PATH)}/{name}", f"update resource group {name}", json=payload
        )

    async def get_resource_group(self, name: str) -> Dict[str, Any]:
        return await self._send("GET", f"{self._path(RESOURCE_GROUPS_PATH)}/{name}", f"get resource group {name}")

    async def delete_resource_group(self, name: str) -> bool:
        """Deletes the resource group. Returns False if it was already gone."""
        try:
            await self._send("DELETE", f"{self._path(RESOURCE_GROUPS_PATH)}/{name}", f"delete resource group {name}")
        except NotFoundError:
            return False
        return True
