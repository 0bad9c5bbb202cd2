from .adaptor import Metal3Adaptor

__all__ = ["Metal3Adaptor"]
