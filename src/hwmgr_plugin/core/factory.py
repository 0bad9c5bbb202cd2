# src/hwmgr_plugin/core/factory.py
"""
Factory functions to instantiate core components like the resource store,
the adaptor registry and the reconciler.
"""

import logging
import os
from functools import lru_cache

from ..adaptors.dell import DellHwMgrAdaptor
from ..adaptors.loopback import LoopbackAdaptor
from ..adaptors.metal3 import Metal3Adaptor
from ..adaptors.registry import AdaptorRegistry
from ..storage.base_store import ResourceStore
from ..storage.kubernetes_store import KubernetesResourceStore
from ..storage.memory_store import InMemoryResourceStore
from .config import config
from .controller import NodePoolController
from .reconciler import NodePoolReconciler

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_store() -> ResourceStore:
    """
    Factory function to get the appropriate store based on config.
    Uses lru_cache to act as a singleton.
    """
    # Allow tests to override STORE_TYPE via environment variables (monkeypatch).
    store_type = os.getenv("STORE_TYPE", config.STORE_TYPE).lower()

    if store_type == "kubernetes":
        logger.info("Using Kubernetes resource store.")
        return KubernetesResourceStore()
    elif store_type == "memory":
        logger.info("Using in-memory resource store.")
        return InMemoryResourceStore()
    else:
        raise NotImplementedError(f"Store for STORE_TYPE '{store_type}' not implemented.")


@lru_cache(maxsize=1)
def get_adaptor_registry() -> AdaptorRegistry:
    """
    Returns the registry with every supported adaptor, sharing the store.
    """
    store = get_store()
    return AdaptorRegistry(
        store,
        [
            LoopbackAdaptor(store),
            Metal3Adaptor(store),
            DellHwMgrAdaptor(store),
        ],
    )


@lru_cache(maxsize=1)
def get_reconciler() -> NodePoolReconciler:
    return NodePoolReconciler(get_store(), get_adaptor_registry())


def get_controller() -> NodePoolController:
    return NodePoolController(get_store(), get_reconciler())
