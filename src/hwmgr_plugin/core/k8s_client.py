# src/hwmgr_plugin/core/k8s_client.py
"""
Cluster connection settings for the Kubernetes store.

The service account mounted into the pod is preferred. Outside a cluster
the kubeconfig named by KUBECONFIG (or the default location) is used,
optionally pinned to KUBE_CONTEXT. Settings are loaded once per process.
"""

import asyncio
import logging
from typing import Optional

from kubernetes_asyncio import client
from kubernetes_asyncio import config as kube_config

from .config import config

logger = logging.getLogger(__name__)

_load_lock: Optional[asyncio.Lock] = None
_loaded_from: Optional[str] = None


def _lock() -> asyncio.Lock:
    global _load_lock
    if _load_lock is None:
        _load_lock = asyncio.Lock()
    return _load_lock


async def load_cluster_config() -> Optional[str]:
    """
    Loads the connection settings unless already loaded.

    Returns:
        Where the settings came from, or None if no source worked.
    """
    global _loaded_from

    if _loaded_from:
        return _loaded_from

    async with _lock():
        if _loaded_from:
            return _loaded_from

        try:
            kube_config.load_incluster_config()
            _loaded_from = "in-cluster service account"
        except kube_config.ConfigException:
            logger.debug("No in-cluster service account, falling back to kubeconfig")
            try:
                await kube_config.load_kube_config(
                    config_file=config.KUBECONFIG or None,
                    context=config.KUBE_CONTEXT or None,
                )
            except (kube_config.ConfigException, OSError) as e:
                logger.warning(f"Could not load a Kubernetes configuration: {e}")
                return None
            _loaded_from = f"kubeconfig {config.KUBECONFIG or '(default location)'}"

    logger.info(f"Loaded Kubernetes configuration from {_loaded_from}")
    return _loaded_from


def reset_cluster_config() -> None:
    """Forgets the loaded settings so the next call reloads them."""
    global _loaded_from
    _loaded_from = None


async def get_api_client() -> Optional[client.ApiClient]:
    """Returns a new ApiClient, or None when the cluster is unreachable by configuration."""
    if await load_cluster_config() is None:
        return None
    return client.ApiClient()
