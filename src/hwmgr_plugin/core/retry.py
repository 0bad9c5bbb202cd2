# src/hwmgr_plugin/core/retry.py
"""
Read-modify-write retry helpers for objects in the shared store.

The function handed to these helpers must perform the whole cycle itself:
fetch the latest copy by key, apply the mutation, and write it back. A retry
therefore always starts from the freshest state in the store. Optimistic
concurrency is the only protection against concurrent writers; there is no
locking.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from .config import config
from .exceptions import ConflictError, NotFoundError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounds for a retry loop: attempts, and exponential backoff capped at max_delay."""

    max_attempts: int
    base_delay: float
    max_delay: float


def default_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=config.RETRY_MAX_ATTEMPTS,
        base_delay=config.RETRY_BASE_DELAY,
        max_delay=config.RETRY_MAX_DELAY,
    )


def _is_retriable(exc: Optional[BaseException]) -> bool:
    return isinstance(exc, (ConflictError, TransientStoreError))


def _conflict_or_retriable(retry_state: RetryCallState) -> bool:
    return _is_retriable(retry_state.outcome.exception())


def _conflict_or_retriable_or_first_not_found(retry_state: RetryCallState) -> bool:
    exc = retry_state.outcome.exception()
    if _is_retriable(exc):
        return True
    # A not-found on the first read is a benign race with an in-flight create.
    return isinstance(exc, NotFoundError) and retry_state.attempt_number == 1


def _log_retry(retry_state: RetryCallState) -> None:
    logger.debug(
        "Retrying store mutation after attempt %d: %s",
        retry_state.attempt_number,
        retry_state.outcome.exception(),
    )


async def _run(fn: Callable[[], Awaitable[T]], policy: Optional[RetryPolicy], predicate) -> T:
    policy = policy or default_retry_policy()
    retrying = AsyncRetrying(
        retry=predicate,
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.base_delay, min=policy.base_delay, max=policy.max_delay),
        before_sleep=_log_retry,
        reraise=True,
    )
    result = None
    async for attempt in retrying:
        with attempt:
            result = await fn()
    return result


async def retry_on_conflict(fn: Callable[[], Awaitable[T]], policy: Optional[RetryPolicy] = None) -> T:
    """
    Runs fn, re-running it while it fails with a write conflict or a transient store error.

    Raises:
        The last error once the policy's attempts are exhausted, or any
        non-retriable error immediately.
    """
    return await _run(fn, policy, _conflict_or_retriable)


async def retry_on_conflict_or_not_found(fn: Callable[[], Awaitable[T]], policy: Optional[RetryPolicy] = None) -> T:
    """Like retry_on_conflict, but also retries once when the first attempt reports not-found."""
    return await _run(fn, policy, _conflict_or_retriable_or_first_not_found)
