# src/hwmgr_plugin/core/fsm.py
"""
Classification of a NodePool into the action the reconciler must take.

There is no stored state field: the NodePool's condition list is the state.
The classifier is pure and total over every shape of that list.
"""

from enum import Enum

from ..models.conditions import ConditionReason, ConditionStatus, ConditionType
from ..models.nodepool import NodePool
from .conditions import find_status_condition


class NodePoolFSMAction(str, Enum):
    CREATE = "Create"
    PROCESSING = "Processing"
    SPEC_CHANGED = "SpecChanged"
    FAILED = "Failed"
    NOOP = "Noop"


def determine_action(nodepool: NodePool) -> NodePoolFSMAction:
    """
    Returns the action for the NodePool's current conditions.

    Priority: an empty list means Create; a True Provisioned condition means
    SpecChanged when the generation moved past the observed one and Noop
    otherwise; a Failed reason means Failed, unless the generation moved, in
    which case the new spec gets its own SpecChanged pass; any other
    Provisioned condition means Processing. A non-empty list without a
    Provisioned condition is left alone.
    """
    conditions = nodepool.status.conditions
    if not conditions:
        return NodePoolFSMAction.CREATE

    provisioned = find_status_condition(conditions, ConditionType.PROVISIONED)
    if provisioned is None:
        return NodePoolFSMAction.NOOP

    # Generation drift must be checked before declaring a settled state
    drifted = nodepool.metadata.generation != nodepool.status.hw_mgr_plugin.observed_generation

    if provisioned.status == ConditionStatus.TRUE:
        return NodePoolFSMAction.SPEC_CHANGED if drifted else NodePoolFSMAction.NOOP

    if provisioned.reason == ConditionReason.FAILED.value:
        return NodePoolFSMAction.SPEC_CHANGED if drifted else NodePoolFSMAction.FAILED

    return NodePoolFSMAction.PROCESSING
