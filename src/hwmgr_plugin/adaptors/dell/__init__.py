from .adaptor import DellHwMgrAdaptor

__all__ = ["DellHwMgrAdaptor"]
