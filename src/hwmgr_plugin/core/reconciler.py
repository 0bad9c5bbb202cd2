# src/hwmgr_plugin/core/reconciler.py
"""
Entry point for one reconciliation pass over a NodePool key.

The reconciler resolves the HardwareManager named by the NodePool, picks
the adaptor registered for it and either finalizes a NodePool being
deleted or hands it to the adaptor's state machine. Errors are turned
into conditions here, in one place, so that every adaptor reports them
the same way.
"""

import logging

from ..adaptors.registry import AdaptorRegistry
from ..models.conditions import ConditionReason, ConditionStatus, ConditionType
from ..models.nodepool import NodePool
from ..storage.base_store import ResourceStore
from .exceptions import (
    AdaptorValidationError,
    BackendUnavailableError,
    ConflictError,
    NotFoundError,
    UnknownAdaptorError,
)
from .nodepool_utils import (
    NODEPOOL_FINALIZER,
    get_nodepool,
    nodepool_add_finalizer,
    nodepool_remove_finalizer,
    update_nodepool_plugin_status,
    update_nodepool_status_condition,
)
from .results import (
    ReconcileResult,
    do_not_requeue,
    requeue_immediately,
    requeue_with_medium_interval,
    requeue_with_short_interval,
)

logger = logging.getLogger(__name__)


class NodePoolReconciler:
    def __init__(self, store: ResourceStore, registry: AdaptorRegistry):
        self.store = store
        self.registry = registry

    async def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """
        Runs one pass for the NodePool namespace/name.

        Raises:
            HwMgrPluginError: For failures that are neither a validation
                error nor an unreachable backend; the caller re-delivers the key.
        """
        try:
            nodepool = await get_nodepool(self.store, namespace, name)
        except NotFoundError:
            logger.info(f"NodePool {namespace}/{name} not found, assuming it was deleted")
            return do_not_requeue()

        try:
            hwmgr = await self.registry.get_hardware_manager(nodepool.spec.hw_mgr_id)
        except NotFoundError:
            if nodepool.metadata.deletion_timestamp is not None:
                # Nothing can be released without the backend details; keep the finalizer.
                logger.warning(f"HardwareManager {nodepool.spec.hw_mgr_id} not found, cannot finalize {nodepool.key()}")
                return requeue_with_medium_interval()
            message = f"Unable to find HardwareManager {nodepool.spec.hw_mgr_id}"
            logger.warning(f"NodePool {nodepool.key()}: {message}")
            await self._set_provisioned(nodepool, ConditionReason.IN_PROGRESS, message)
            return requeue_with_short_interval()

        try:
            adaptor = self.registry.adaptor_for(hwmgr)
        except UnknownAdaptorError as e:
            await self._fail(nodepool, str(e))
            return do_not_requeue()

        if nodepool.metadata.deletion_timestamp is not None:
            return await self._handle_deletion(adaptor, hwmgr, nodepool)

        if not nodepool.has_finalizer(NODEPOOL_FINALIZER):
            await nodepool_add_finalizer(self.store, nodepool)
            # The add went to a fresh copy; pick up its resource version.
            nodepool = await get_nodepool(self.store, namespace, name)

        try:
            return await adaptor.handle_nodepool(hwmgr, nodepool)
        except AdaptorValidationError as e:
            logger.error(f"NodePool {nodepool.key()} failed: {e}")
            await self._fail(nodepool, str(e))
            return do_not_requeue()
        except BackendUnavailableError as e:
            logger.warning(f"NodePool {nodepool.key()}: backend unavailable: {e}")
            await self._set_provisioned(nodepool, ConditionReason.IN_PROGRESS, str(e))
            return requeue_with_short_interval()
        except ConflictError as e:
            # Retries ran out against a faster writer; start over from the latest version.
            logger.info(f"NodePool {nodepool.key()}: write conflict, requeueing: {e}")
            return requeue_immediately()

    async def _handle_deletion(self, adaptor, hwmgr, nodepool: NodePool) -> ReconcileResult:
        if not nodepool.has_finalizer(NODEPOOL_FINALIZER):
            return do_not_requeue()

        logger.info(f"NodePool {nodepool.key()} is being deleted")
        try:
            finalized = await adaptor.handle_nodepool_deletion(hwmgr, nodepool)
        except BackendUnavailableError as e:
            logger.warning(f"NodePool {nodepool.key()}: release postponed, backend unavailable: {e}")
            return requeue_with_short_interval()

        if not finalized:
            return requeue_with_short_interval()

        await self._remove_finalizer(nodepool)
        return do_not_requeue()

    async def _remove_finalizer(self, nodepool: NodePool) -> None:
        try:
            await nodepool_remove_finalizer(self.store, nodepool)
        except NotFoundError:
            logger.debug(f"NodePool {nodepool.key()} already removed")
            return
        logger.info(f"Finalizer removed from NodePool {nodepool.key()}")

    async def _set_provisioned(self, nodepool: NodePool, reason: ConditionReason, message: str) -> None:
        await update_nodepool_status_condition(
            self.store, nodepool, ConditionType.PROVISIONED, reason, ConditionStatus.FALSE, message
        )

    async def _fail(self, nodepool: NodePool, message: str) -> None:
        await self._set_provisioned(nodepool, ConditionReason.FAILED, message)
        await update_nodepool_plugin_status(self.store, nodepool)
