# src/hwmgr_plugin/api/dependencies.py
"""
FastAPI dependency injection functions.

These provide the adaptor registry to route handlers via Depends(),
keeping the API layer decoupled from how adaptors are built.
"""

import logging

from hwmgr_plugin.adaptors.registry import AdaptorRegistry

logger = logging.getLogger(__name__)


async def get_adaptor_registry() -> AdaptorRegistry:
    """Provides the AdaptorRegistry instance via the factory."""
    from hwmgr_plugin.core.factory import get_adaptor_registry as factory_get_registry

    return factory_get_registry()
