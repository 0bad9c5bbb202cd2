# src/hwmgr_plugin/adaptors/registry.py

import logging
from typing import Dict, Iterable, Optional

from ..core.config import config
from ..core.exceptions import UnknownAdaptorError
from ..models.hardware_manager import AdaptorID, HardwareManager
from ..storage.base_store import ResourceStore
from .base import HwMgrAdaptor, ResourcePoolsResult, ResourcesResult

logger = logging.getLogger(__name__)


class AdaptorRegistry:
    """
    Holds one adaptor instance per adaptor ID and resolves HardwareManagers
    to them. Adding a backend means registering one more adaptor here.
    """

    def __init__(self, store: ResourceStore, adaptors: Iterable[HwMgrAdaptor] = ()):
        self.store = store
        self._adaptors: Dict[AdaptorID, HwMgrAdaptor] = {}
        for adaptor in adaptors:
            self.register(adaptor)

    def register(self, adaptor: HwMgrAdaptor) -> None:
        self._adaptors[adaptor.adaptor_id] = adaptor
        logger.info(f"Registered adaptor '{adaptor.adaptor_id.value}'")

    def get_adaptor(self, adaptor_id) -> HwMgrAdaptor:
        try:
            return self._adaptors[AdaptorID(adaptor_id)]
        except (KeyError, ValueError) as e:
            raise UnknownAdaptorError(f"unsupported adaptor ID: {adaptor_id}") from e

    def adaptor_for(self, hwmgr: HardwareManager) -> HwMgrAdaptor:
        return self.get_adaptor(hwmgr.spec.adaptor_id)

    async def get_hardware_manager(self, hw_mgr_id: str, namespace: Optional[str] = None) -> HardwareManager:
        """
        Raises:
            NotFoundError: If no HardwareManager has that name in the plugin namespace.
        """
        return await self.store.get(HardwareManager, namespace or config.NAMESPACE, hw_mgr_id)

    async def get_resource_pools(self, hwmgr: HardwareManager) -> ResourcePoolsResult:
        return await self.adaptor_for(hwmgr).get_resource_pools(hwmgr)

    async def get_resources(self, hwmgr: HardwareManager) -> ResourcesResult:
        return await self.adaptor_for(hwmgr).get_resources(hwmgr)

    async def close(self):
        for adaptor in self._adaptors.values():
            await adaptor.close()
