from .base import HwMgrAdaptor
from .dell import DellHwMgrAdaptor
from .loopback import LoopbackAdaptor
from .metal3 import Metal3Adaptor
from .registry import AdaptorRegistry

__all__ = [
    "AdaptorRegistry",
    "DellHwMgrAdaptor",
    "HwMgrAdaptor",
    "LoopbackAdaptor",
    "Metal3Adaptor",
]
