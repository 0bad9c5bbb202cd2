from .adaptor import LoopbackAdaptor

__all__ = ["LoopbackAdaptor"]
