# src/hwmgr_plugin/core/scheduler.py
"""
Periodic async jobs, such as the controller's full resync.
"""

import asyncio
import logging
import re
from typing import Callable, Coroutine, List

logger = logging.getLogger(__name__)

_INTERVAL_RE = re.compile(r"^(\d+)([smh])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600}


def parse_interval(interval_str: str) -> int:
    """Converts a duration string like '30s', '5m' or '1h' into seconds."""
    match = _INTERVAL_RE.match(interval_str.lower())
    if not match:
        raise ValueError(f"Invalid interval format: '{interval_str}'. Use 's', 'm', or 'h'.")
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


class Scheduler:
    """
    Runs each job immediately, then again every interval, until stopped.
    A job that raises is logged and retried at its next tick.
    """

    def __init__(self):
        self.tasks: List[asyncio.Task] = []

    async def _loop(self, job_func: Callable[[], Coroutine], interval_seconds: int):
        name = job_func.__name__
        while True:
            try:
                await job_func()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Periodic job '{name}' failed: {e}", exc_info=True)
            await asyncio.sleep(interval_seconds)

    def add_job(self, job_func: Callable[[], Coroutine], interval_seconds: int) -> asyncio.Task:
        task = asyncio.create_task(self._loop(job_func, interval_seconds), name=f"periodic-{job_func.__name__}")
        self.tasks.append(task)
        logger.info(f"Periodic job '{job_func.__name__}' runs every {interval_seconds}s")
        return task

    def add_job_from_string(self, job_func: Callable[[], Coroutine], interval_str: str) -> asyncio.Task:
        return self.add_job(job_func, parse_interval(interval_str))

    async def stop(self):
        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
            logger.debug(f"Stopped {len(self.tasks)} periodic job(s)")
        self.tasks.clear()
