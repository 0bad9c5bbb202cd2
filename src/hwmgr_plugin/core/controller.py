# src/hwmgr_plugin/core/controller.py
"""
Runtime that feeds NodePool keys to the reconciler.

Keys come from the store's watch stream and from a periodic resync that
lists every NodePool. A pool of workers drains the work queue; the queue
guarantees a key is never reconciled by two workers at once, while
different keys proceed concurrently.
"""

import asyncio
import logging
from typing import List, Optional

from ..models.nodepool import NodePool
from ..storage.base_store import ResourceStore
from .config import config
from .exceptions import HwMgrPluginError
from .reconciler import NodePoolReconciler
from .scheduler import Scheduler
from .workqueue import WorkQueue

logger = logging.getLogger(__name__)

WATCH_RESTART_DELAY = 5


def split_key(key: str):
    namespace, _, name = key.partition("/")
    return namespace, name


class NodePoolController:
    def __init__(
        self,
        store: ResourceStore,
        reconciler: NodePoolReconciler,
        namespace: Optional[str] = None,
        workers: Optional[int] = None,
        resync_interval: Optional[str] = None,
    ):
        self.store = store
        self.reconciler = reconciler
        self.namespace = namespace or config.NAMESPACE
        self.workers = workers or config.RECONCILE_WORKERS
        self.resync_interval = resync_interval or config.RESYNC_INTERVAL
        self.queue = WorkQueue()
        self.scheduler = Scheduler()
        self._tasks: List[asyncio.Task] = []

    async def resync(self):
        """Queues every NodePool in the namespace."""
        nodepools = await self.store.list(NodePool, namespace=self.namespace)
        for nodepool in nodepools:
            self.queue.add(nodepool.key())
        logger.debug(f"Resync queued {len(nodepools)} NodePool(s)")

    async def process_next(self) -> str:
        """Reconciles the next queued key and schedules its re-delivery if asked to."""
        key = await self.queue.get()
        namespace, name = split_key(key)
        try:
            result = await self.reconciler.reconcile(namespace, name)
        except HwMgrPluginError as e:
            logger.error(f"Reconcile of NodePool {key} failed: {e}")
            self.queue.add_after(key, config.REQUEUE_SHORT_SECONDS)
        except Exception as e:
            logger.error(f"Unexpected error reconciling NodePool {key}: {e}", exc_info=True)
            self.queue.add_after(key, config.REQUEUE_SHORT_SECONDS)
        else:
            if result.requeue_after:
                self.queue.add_after(key, result.requeue_after)
            elif result.requeue:
                self.queue.add_after(key, 0)
        finally:
            self.queue.done(key)
        return key

    async def _worker(self, index: int):
        logger.debug(f"Reconcile worker {index} started")
        while True:
            await self.process_next()

    async def _watch(self):
        while True:
            try:
                events = self.store.watch(NodePool, self.namespace)
            except NotImplementedError:
                logger.info("Store does not support watch; relying on periodic resync")
                return
            try:
                async for event_type, nodepool in events:
                    logger.debug(f"Watch event {event_type} for NodePool {nodepool.key()}")
                    self.queue.add(nodepool.key())
            except HwMgrPluginError as e:
                logger.warning(f"NodePool watch interrupted: {e}")
            except Exception as e:
                logger.error(f"NodePool watch failed: {e}", exc_info=True)
            await asyncio.sleep(WATCH_RESTART_DELAY)

    async def start(self):
        logger.info(
            f"Starting NodePool controller in namespace '{self.namespace}' with {self.workers} worker(s), "
            f"resync every {self.resync_interval}"
        )
        self.scheduler.add_job_from_string(self.resync, self.resync_interval)
        self._tasks.append(asyncio.create_task(self._watch()))
        for index in range(self.workers):
            self._tasks.append(asyncio.create_task(self._worker(index)))

    async def stop(self):
        logger.info("Stopping NodePool controller...")
        await self.scheduler.stop()
        self.queue.shutdown()
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def run(self):
        """Runs until cancelled."""
        await self.start()
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()
