# src/hwmgr_plugin/storage/kubernetes_store.py

import logging
from typing import AsyncIterator, Dict, List, Optional, Tuple, Type

from kubernetes_asyncio import client, watch
from kubernetes_asyncio.client.rest import ApiException

from ..core.exceptions import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    StoreError,
    TransientStoreError,
)
from ..core.k8s_client import get_api_client
from ..models.meta import KubernetesObject
from .base_store import ResourceStore, T, label_selector

logger = logging.getLogger(__name__)

# Core kinds served by CoreV1Api, mapped to the suffix of their typed methods.
_CORE_KINDS = {
    "ConfigMap": "config_map",
    "Secret": "secret",
}

_TRANSIENT_STATUSES = (429, 500, 503, 504)


def translate_api_exception(e: ApiException, what: str, creating: bool = False) -> StoreError:
    """Maps an API server error onto the plugin's store exception taxonomy."""
    if e.status == 404:
        return NotFoundError(f"{what} not found")
    if e.status == 409:
        if creating:
            return AlreadyExistsError(f"{what} already exists")
        return ConflictError(f"conflict writing {what}: {e.reason}")
    if e.status in _TRANSIENT_STATUSES:
        return TransientStoreError(f"transient error accessing {what}: {e.status} {e.reason}")
    return StoreError(f"error accessing {what}: {e.status} {e.reason}")


class KubernetesResourceStore(ResourceStore):
    """
    Store backed by the cluster API server. Custom resources go through
    CustomObjectsApi, ConfigMaps and Secrets through CoreV1Api.
    """

    def __init__(self, api_client: Optional[client.ApiClient] = None):
        self._api_client = api_client

    async def _ensure_client(self) -> client.ApiClient:
        """
        Lazily initialize the Kubernetes Async client using the centralized thread-safe loader.
        """
        if self._api_client:
            return self._api_client
        self._api_client = await get_api_client()
        if self._api_client is None:
            raise TransientStoreError("Kubernetes client is not configured")
        return self._api_client

    async def _custom_api(self) -> client.CustomObjectsApi:
        return client.CustomObjectsApi(await self._ensure_client())

    async def _core_api(self) -> client.CoreV1Api:
        return client.CoreV1Api(await self._ensure_client())

    def _core_suffix(self, model_cls: Type[KubernetesObject]) -> Optional[str]:
        if model_cls.API_GROUP:
            return None
        suffix = _CORE_KINDS.get(model_cls.KIND)
        if suffix is None:
            raise StoreError(f"unsupported core kind {model_cls.KIND}")
        return suffix

    def _crd_args(self, model_cls: Type[KubernetesObject]) -> Tuple[str, str]:
        return model_cls.API_GROUP, model_cls.API_VERSION

    def _to_model(self, model_cls: Type[T], raw) -> T:
        if not isinstance(raw, dict):
            raw = self._api_client.sanitize_for_serialization(raw)
        return model_cls.model_validate(raw)

    async def get(self, model_cls: Type[T], namespace: str, name: str) -> T:
        what = f"{model_cls.KIND} {namespace}/{name}"
        try:
            suffix = self._core_suffix(model_cls)
            if suffix:
                api = await self._core_api()
                raw = await getattr(api, f"read_namespaced_{suffix}")(name, namespace)
            else:
                api = await self._custom_api()
                group, version = self._crd_args(model_cls)
                raw = await api.get_namespaced_custom_object(group, version, namespace, model_cls.PLURAL, name)
        except ApiException as e:
            raise translate_api_exception(e, what) from e
        return self._to_model(model_cls, raw)

    async def list(
        self,
        model_cls: Type[T],
        namespace: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> List[T]:
        what = f"{model_cls.KIND} list"
        selector = label_selector(labels)
        kwargs = {"label_selector": selector} if selector else {}
        try:
            suffix = self._core_suffix(model_cls)
            if suffix:
                api = await self._core_api()
                if namespace:
                    result = await getattr(api, f"list_namespaced_{suffix}")(namespace, **kwargs)
                else:
                    result = await getattr(api, f"list_{suffix}_for_all_namespaces")(**kwargs)
                return [self._to_model(model_cls, item) for item in result.items]

            api = await self._custom_api()
            group, version = self._crd_args(model_cls)
            if namespace:
                result = await api.list_namespaced_custom_object(group, version, namespace, model_cls.PLURAL, **kwargs)
            else:
                result = await api.list_cluster_custom_object(group, version, model_cls.PLURAL, **kwargs)
        except ApiException as e:
            raise translate_api_exception(e, what) from e
        return [self._to_model(model_cls, item) for item in result.get("items", [])]

    async def create(self, obj: T) -> T:
        model_cls = type(obj)
        what = f"{obj.KIND} {obj.key()}"
        body = obj.to_dict()
        try:
            suffix = self._core_suffix(model_cls)
            if suffix:
                api = await self._core_api()
                raw = await getattr(api, f"create_namespaced_{suffix}")(obj.metadata.namespace, body)
            else:
                api = await self._custom_api()
                group, version = self._crd_args(model_cls)
                raw = await api.create_namespaced_custom_object(
                    group, version, obj.metadata.namespace, model_cls.PLURAL, body
                )
        except ApiException as e:
            raise translate_api_exception(e, what, creating=True) from e
        return self._to_model(model_cls, raw)

    async def update(self, obj: T) -> T:
        model_cls = type(obj)
        what = f"{obj.KIND} {obj.key()}"
        body = obj.to_dict()
        try:
            suffix = self._core_suffix(model_cls)
            if suffix:
                api = await self._core_api()
                raw = await getattr(api, f"replace_namespaced_{suffix}")(
                    obj.metadata.name, obj.metadata.namespace, body
                )
            else:
                api = await self._custom_api()
                group, version = self._crd_args(model_cls)
                raw = await api.replace_namespaced_custom_object(
                    group, version, obj.metadata.namespace, model_cls.PLURAL, obj.metadata.name, body
                )
        except ApiException as e:
            raise translate_api_exception(e, what) from e
        return self._to_model(model_cls, raw)

    async def update_status(self, obj: T) -> T:
        model_cls = type(obj)
        what = f"{obj.KIND} {obj.key()} status"
        if self._core_suffix(model_cls):
            raise StoreError(f"{obj.KIND} has no status subresource")
        try:
            api = await self._custom_api()
            group, version = self._crd_args(model_cls)
            raw = await api.replace_namespaced_custom_object_status(
                group, version, obj.metadata.namespace, model_cls.PLURAL, obj.metadata.name, obj.to_dict()
            )
        except ApiException as e:
            raise translate_api_exception(e, what) from e
        return self._to_model(model_cls, raw)

    async def delete(self, model_cls: Type[T], namespace: str, name: str) -> None:
        what = f"{model_cls.KIND} {namespace}/{name}"
        try:
            suffix = self._core_suffix(model_cls)
            if suffix:
                api = await self._core_api()
                await getattr(api, f"delete_namespaced_{suffix}")(name, namespace)
            else:
                api = await self._custom_api()
                group, version = self._crd_args(model_cls)
                await api.delete_namespaced_custom_object(group, version, namespace, model_cls.PLURAL, name)
        except ApiException as e:
            raise translate_api_exception(e, what) from e

    async def watch(self, model_cls: Type[T], namespace: Optional[str] = None) -> AsyncIterator[Tuple[str, T]]:
        """Yields (event type, object) pairs for a custom resource kind until the stream ends."""
        api = await self._custom_api()
        group, version = self._crd_args(model_cls)
        if namespace:
            func, args = api.list_namespaced_custom_object, (group, version, namespace, model_cls.PLURAL)
        else:
            func, args = api.list_cluster_custom_object, (group, version, model_cls.PLURAL)

        w = watch.Watch()
        try:
            async for event in w.stream(func, *args):
                obj = event.get("object")
                if not isinstance(obj, dict) or event.get("type") == "ERROR":
                    logger.warning("Ignoring unexpected watch event for %s: %s", model_cls.KIND, event.get("type"))
                    continue
                yield event["type"], model_cls.model_validate(obj)
        except ApiException as e:
            raise translate_api_exception(e, f"{model_cls.KIND} watch") from e
        finally:
            w.stop()

    async def close(self):
        """Close the Kubernetes API client if it exists."""
        if self._api_client:
            await self._api_client.close()
            logger.debug("Kubernetes store API client closed.")
            self._api_client = None
