# src/hwmgr_plugin/models/meta.py
"""
Base models shared by every cluster object handled by the plugin.

Objects are exchanged with the API server as plain JSON using camelCase
keys. Unknown fields are kept on the model so that a read-modify-write
cycle never drops data owned by other controllers.
"""

from datetime import datetime
from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class K8sModel(BaseModel):
    """Base for every nested structure serialized in the Kubernetes JSON shape."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class OwnerReference(K8sModel):
    api_version: str
    kind: str
    name: str
    uid: str
    controller: Optional[bool] = None
    block_owner_deletion: Optional[bool] = None


class ObjectMeta(K8sModel):
    name: str = ""
    namespace: Optional[str] = None
    uid: Optional[str] = None
    generation: int = 0
    resource_version: Optional[str] = None
    creation_timestamp: Optional[datetime] = None
    deletion_timestamp: Optional[datetime] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    finalizers: List[str] = Field(default_factory=list)
    owner_references: List[OwnerReference] = Field(default_factory=list)


class KubernetesObject(K8sModel):
    """
    A namespaced cluster object.

    Subclasses declare where they live in the API through the class
    variables below; the stores use them to route requests.
    """

    API_GROUP: ClassVar[str] = ""
    API_VERSION: ClassVar[str] = "v1"
    KIND: ClassVar[str] = ""
    PLURAL: ClassVar[str] = ""

    api_version: Optional[str] = None
    kind: Optional[str] = None
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)

    def model_post_init(self, __context) -> None:
        if self.api_version is None:
            self.api_version = self.group_version()
        if self.kind is None:
            self.kind = self.KIND

    @classmethod
    def group_version(cls) -> str:
        if cls.API_GROUP:
            return f"{cls.API_GROUP}/{cls.API_VERSION}"
        return cls.API_VERSION

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace

    def key(self) -> str:
        return f"{self.metadata.namespace}/{self.metadata.name}"

    def owner_reference(self) -> OwnerReference:
        """Builds an owner reference to this object that blocks its deletion until dependents are gone."""
        return OwnerReference(
            api_version=self.api_version,
            kind=self.kind,
            name=self.metadata.name,
            uid=self.metadata.uid or "",
            block_owner_deletion=True,
        )

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.metadata.finalizers

    def add_finalizer(self, finalizer: str) -> bool:
        """Adds the finalizer; returns True if the object was changed."""
        if finalizer in self.metadata.finalizers:
            return False
        self.metadata.finalizers.append(finalizer)
        return True

    def remove_finalizer(self, finalizer: str) -> bool:
        """Removes the finalizer; returns True if the object was changed."""
        if finalizer not in self.metadata.finalizers:
            return False
        self.metadata.finalizers = [f for f in self.metadata.finalizers if f != finalizer]
        return True

    def is_owned_by(self, owner: "KubernetesObject") -> bool:
        return any(ref.uid == owner.metadata.uid for ref in self.metadata.owner_references)


class ConfigMap(KubernetesObject):
    API_GROUP: ClassVar[str] = ""
    API_VERSION: ClassVar[str] = "v1"
    KIND: ClassVar[str] = "ConfigMap"
    PLURAL: ClassVar[str] = "configmaps"

    data: Dict[str, str] = Field(default_factory=dict)


class Secret(KubernetesObject):
    API_GROUP: ClassVar[str] = ""
    API_VERSION: ClassVar[str] = "v1"
    KIND: ClassVar[str] = "Secret"
    PLURAL: ClassVar[str] = "secrets"

    type: str = "Opaque"
    data: Dict[str, str] = Field(default_factory=dict)
