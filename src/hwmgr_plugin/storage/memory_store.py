# src/hwmgr_plugin/storage/memory_store.py

import copy
import itertools
import logging
import uuid
from typing import Dict, List, Optional, Tuple, Type

from ..core.exceptions import AlreadyExistsError, ConflictError, NotFoundError
from ..models.conditions import now
from ..models.meta import KubernetesObject
from .base_store import ResourceStore, T

logger = logging.getLogger(__name__)

_Key = Tuple[str, str, str]


class InMemoryResourceStore(ResourceStore):
    """
    A process-local store that mimics the API server semantics the
    controller depends on: resource versions checked on every write,
    generation bumped on spec changes, a separate status write path,
    finalizer-aware deletion and owner-reference garbage collection.
    """

    def __init__(self):
        self._objects: Dict[_Key, dict] = {}
        self._versions = itertools.count(1)

    @staticmethod
    def _key(model_cls: Type[KubernetesObject], namespace: Optional[str], name: str) -> _Key:
        return (model_cls.KIND, namespace or "default", name)

    def _next_version(self) -> str:
        return str(next(self._versions))

    def _load(self, model_cls: Type[T], raw: dict) -> T:
        return model_cls.model_validate(copy.deepcopy(raw))

    def _check_version(self, current: dict, obj: KubernetesObject) -> None:
        wanted = obj.metadata.resource_version
        if wanted and wanted != current["metadata"].get("resourceVersion"):
            raise ConflictError(
                f"Operation cannot be fulfilled on {obj.KIND} {obj.key()}: "
                "the object has been modified; please apply your changes to the latest version and try again"
            )

    async def get(self, model_cls: Type[T], namespace: str, name: str) -> T:
        raw = self._objects.get(self._key(model_cls, namespace, name))
        if raw is None:
            raise NotFoundError(f"{model_cls.KIND} {namespace}/{name} not found")
        return self._load(model_cls, raw)

    async def list(
        self,
        model_cls: Type[T],
        namespace: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> List[T]:
        items = []
        for (kind, ns, _), raw in self._objects.items():
            if kind != model_cls.KIND:
                continue
            if namespace is not None and ns != namespace:
                continue
            if labels:
                obj_labels = raw["metadata"].get("labels") or {}
                if any(obj_labels.get(k) != v for k, v in labels.items()):
                    continue
            items.append(self._load(model_cls, raw))
        return items

    async def create(self, obj: T) -> T:
        if not obj.metadata.namespace:
            obj.metadata.namespace = "default"
        key = self._key(type(obj), obj.metadata.namespace, obj.metadata.name)
        if key in self._objects:
            raise AlreadyExistsError(f"{obj.KIND} {obj.key()} already exists")

        raw = obj.to_dict()
        meta = raw.setdefault("metadata", {})
        meta["uid"] = str(uuid.uuid4())
        meta["generation"] = 1
        meta["resourceVersion"] = self._next_version()
        meta["creationTimestamp"] = now().isoformat().replace("+00:00", "Z")
        meta.pop("deletionTimestamp", None)
        self._objects[key] = raw
        logger.debug("Created %s %s", obj.KIND, obj.key())
        return self._load(type(obj), raw)

    async def update(self, obj: T) -> T:
        model_cls = type(obj)
        key = self._key(model_cls, obj.metadata.namespace, obj.metadata.name)
        current = self._objects.get(key)
        if current is None:
            raise NotFoundError(f"{obj.KIND} {obj.key()} not found")
        self._check_version(current, obj)

        raw = obj.to_dict()
        meta = raw.setdefault("metadata", {})
        for field in ("uid", "creationTimestamp", "deletionTimestamp", "generation"):
            if field in current["metadata"]:
                meta[field] = current["metadata"][field]
            else:
                meta.pop(field, None)

        # The status of kinds with a status subresource only changes through update_status.
        if "status" in model_cls.model_fields:
            if "status" in current:
                raw["status"] = current["status"]
            else:
                raw.pop("status", None)

        if raw.get("spec") != current.get("spec"):
            meta["generation"] = current["metadata"].get("generation", 0) + 1
        meta["resourceVersion"] = self._next_version()
        self._objects[key] = raw

        if meta.get("deletionTimestamp") and not meta.get("finalizers"):
            self._remove(key)
        return self._load(model_cls, raw)

    async def update_status(self, obj: T) -> T:
        model_cls = type(obj)
        key = self._key(model_cls, obj.metadata.namespace, obj.metadata.name)
        current = self._objects.get(key)
        if current is None:
            raise NotFoundError(f"{obj.KIND} {obj.key()} not found")
        self._check_version(current, obj)

        current["status"] = obj.to_dict().get("status", {})
        current["metadata"]["resourceVersion"] = self._next_version()
        return self._load(model_cls, current)

    async def delete(self, model_cls: Type[T], namespace: str, name: str) -> None:
        key = self._key(model_cls, namespace, name)
        if key not in self._objects:
            raise NotFoundError(f"{model_cls.KIND} {namespace}/{name} not found")
        self._delete_key(key)

    def _delete_key(self, key: _Key) -> None:
        raw = self._objects[key]
        meta = raw["metadata"]
        if meta.get("finalizers"):
            if not meta.get("deletionTimestamp"):
                meta["deletionTimestamp"] = now().isoformat().replace("+00:00", "Z")
                meta["resourceVersion"] = self._next_version()
            return
        self._remove(key)

    def _remove(self, key: _Key) -> None:
        raw = self._objects.pop(key)
        logger.debug("Removed %s %s/%s", key[0], key[1], key[2])
        uid = raw["metadata"].get("uid")
        # Garbage collect dependents of the removed owner
        dependents = [
            k
            for k, other in self._objects.items()
            if any(ref.get("uid") == uid for ref in other["metadata"].get("ownerReferences") or [])
        ]
        for dependent in dependents:
            if dependent in self._objects:
                self._delete_key(dependent)
