# src/hwmgr_plugin/core/results.py

from dataclasses import dataclass
from typing import Optional

from .config import config


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a reconciliation pass: whether, and after how long, the key must be re-delivered."""

    requeue: bool = False
    requeue_after: Optional[float] = None


def do_not_requeue() -> ReconcileResult:
    return ReconcileResult()


def requeue_immediately() -> ReconcileResult:
    return ReconcileResult(requeue=True)


def requeue_with_short_interval() -> ReconcileResult:
    return ReconcileResult(requeue=True, requeue_after=config.REQUEUE_SHORT_SECONDS)


def requeue_with_medium_interval() -> ReconcileResult:
    return ReconcileResult(requeue=True, requeue_after=config.REQUEUE_MEDIUM_SECONDS)
