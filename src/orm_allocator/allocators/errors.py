"""Allocator exceptions.

Store failures are wrapped at the store boundary so callers of
``BlockAllocator.next()`` see one taxonomy regardless of backend.
"""


class AllocatorError(Exception):
    """Base allocator exception."""

    pass


class ConfigurationError(AllocatorError, ValueError):
    """Allocator parameters are missing or invalid."""

    pass


class StoreError(AllocatorError):
    """The allocator table could not be read or written."""

    def __init__(self, message: str, *, sequence_name: str | None = None):
        self.sequence_name = sequence_name
        super().__init__(message)


class StoreReadError(StoreError):
    """Reading the counter row failed."""

    pass


class StoreWriteError(StoreError):
    """Advancing or creating the counter row failed."""

    pass


class BootstrapRaceError(StoreError):
    """Another writer created the counter row first.

    Raised out of a single attempt so its unit of work rolls back; the
    store retries and never lets this reach the caller.
    """

    pass
