class HwMgrPluginError(Exception):
    """Base exception for the hardware manager plugin."""

    pass


class StoreError(HwMgrPluginError):
    """Base exception for resource store related errors."""

    pass


class NotFoundError(StoreError):
    """Raised when the requested object does not exist in the store."""

    pass


class AlreadyExistsError(StoreError):
    """Raised when creating an object whose name is already taken."""

    pass


class ConflictError(StoreError):
    """Raised when a write is rejected because the object was modified since it was read."""

    pass


class TransientStoreError(StoreError):
    """Raised when the store is temporarily unable to serve the request (throttling, timeouts)."""

    pass


class AdaptorError(HwMgrPluginError):
    """Base exception for hardware adaptor failures."""

    pass


class BackendUnavailableError(AdaptorError):
    """Raised when the hardware management backend cannot be reached."""

    pass


class AdaptorValidationError(AdaptorError):
    """Raised for permanent validation or configuration errors in a request or backend resource."""

    pass


class UnknownAdaptorError(HwMgrPluginError):
    """Raised when a HardwareManager names an adaptor that is not registered."""

    pass
