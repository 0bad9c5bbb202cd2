# src/hwmgr_plugin/models/conditions.py

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from .meta import K8sModel


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionType(str, Enum):
    PROVISIONED = "Provisioned"
    CONFIGURED = "Configured"


class ConditionReason(str, Enum):
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CONFIG_APPLIED = "ConfigApplied"
    CONFIG_UPDATE = "ConfigurationUpdateRequested"


# Message reported on a Configured condition once every node has applied its configuration.
CONFIG_SUCCESS = "Configuration has been applied successfully"


def now() -> datetime:
    """Returns the current UTC time truncated to seconds, as stored by the API server."""
    return datetime.now(timezone.utc).replace(microsecond=0)


class Condition(K8sModel):
    type: str
    status: ConditionStatus = ConditionStatus.UNKNOWN
    reason: str = ""
    message: str = ""
    last_transition_time: datetime = Field(default_factory=now)
