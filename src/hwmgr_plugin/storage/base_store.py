# src/hwmgr_plugin/storage/base_store.py
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Type, TypeVar

from ..models.meta import KubernetesObject

T = TypeVar("T", bound=KubernetesObject)


class ResourceStore(ABC):
    """
    Abstract base class for the backing store of cluster objects.
    Defines the read/write primitives the reconciliation core relies on.

    Writes are optimistic: an object carrying a stale resource version is
    rejected with ConflictError.
    """

    @abstractmethod
    async def get(self, model_cls: Type[T], namespace: str, name: str) -> T:
        """
        Fetches a single object.

        Raises:
            NotFoundError: If the object does not exist.
        """
        pass

    @abstractmethod
    async def list(
        self,
        model_cls: Type[T],
        namespace: Optional[str] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> List[T]:
        """
        Lists objects of a kind, optionally restricted to a namespace and
        to objects carrying all of the given labels.
        """
        pass

    @abstractmethod
    async def create(self, obj: T) -> T:
        """
        Creates a new object and returns the stored copy.

        Raises:
            AlreadyExistsError: If an object with the same name exists.
        """
        pass

    @abstractmethod
    async def update(self, obj: T) -> T:
        """
        Replaces the metadata and spec of an object. The status is left untouched.

        Raises:
            ConflictError: If the object was modified since it was read.
            NotFoundError: If the object no longer exists.
        """
        pass

    @abstractmethod
    async def update_status(self, obj: T) -> T:
        """
        Replaces only the status of an object.

        Raises:
            ConflictError: If the object was modified since it was read.
            NotFoundError: If the object no longer exists.
        """
        pass

    @abstractmethod
    async def delete(self, model_cls: Type[T], namespace: str, name: str) -> None:
        """
        Requests deletion of an object. Objects carrying finalizers are only
        marked for deletion.

        Raises:
            NotFoundError: If the object does not exist.
        """
        pass

    def watch(self, model_cls: Type[T], namespace: Optional[str] = None):
        """
        Returns an async iterator of (event type, object) pairs.

        Raises:
            NotImplementedError: If the store cannot stream changes; callers
                then rely on periodic listing.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support watch")

    async def close(self):
        """
        Clean up resources (e.g., close API clients).
        """
        pass


def label_selector(labels: Optional[Dict[str, str]]) -> Optional[str]:
    """Renders a label dict as an equality-based selector string."""
    if not labels:
        return None
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))
