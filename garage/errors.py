"""Error types raised by garage operations."""


class GarageError(Exception):
    """Base class for all garage errors."""


class NotAuthenticatedError(GarageError):
    """A write was attempted without a resolved user."""


class NotFoundError(GarageError):
    """A vehicle, task or log id is not in the current snapshot."""


class ValidationError(GarageError):
    """A value is outside sane bounds; nothing was written."""


class StorageError(GarageError):
    """A store operation failed. Batches leave every document unchanged."""
