# src/hwmgr_plugin/core/conditions.py
"""
Append/replace semantics for the ordered list of conditions attached to a
resource status. Nothing here performs I/O.
"""

from typing import List, Optional, Union

from ..models.conditions import Condition, ConditionStatus, now


def _value(item) -> str:
    return item.value if hasattr(item, "value") else str(item)


def find_status_condition(conditions: List[Condition], condition_type) -> Optional[Condition]:
    """Returns the condition of the given type, or None."""
    wanted = _value(condition_type)
    for condition in conditions:
        if condition.type == wanted:
            return condition
    return None


def set_status_condition(
    conditions: List[Condition],
    condition_type,
    reason,
    status: Union[ConditionStatus, str],
    message: str,
) -> None:
    """
    Sets a condition in place.

    A missing condition is appended with a fresh transition time. An existing
    one is updated in its current position: when the status or the reason
    changes the transition time is refreshed, otherwise only the message is
    replaced and the original timestamp is kept.
    """
    condition_type = _value(condition_type)
    reason = _value(reason)
    status = ConditionStatus(status)

    existing = find_status_condition(conditions, condition_type)
    if existing is None:
        conditions.append(
            Condition(
                type=condition_type,
                status=status,
                reason=reason,
                message=message,
                last_transition_time=now(),
            )
        )
        return

    if existing.status != status or existing.reason != reason:
        existing.status = status
        existing.reason = reason
        existing.last_transition_time = now()
    existing.message = message


def is_condition_true(conditions: List[Condition], condition_type) -> bool:
    condition = find_status_condition(conditions, condition_type)
    return condition is not None and condition.status == ConditionStatus.TRUE
