"""
Error taxonomy for the shortlink service.

NotFoundError, UnauthorizedError and InvalidArgumentError travel unchanged
from the store/codec through the cache engine and the service to the caller,
where main.py maps them to HTTP responses.

CacheError never reaches the caller: the cache engine logs it and falls back
to the durable store.
"""


class ShortlinkError(Exception):
    """Base class for all service errors."""

    pass


class NotFoundError(ShortlinkError):
    """Record absent from the store (or inactive, on the redirect path)."""

    def __init__(self, resource: str, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class UnauthorizedError(ShortlinkError):
    """Caller does not own the record."""

    pass


class InvalidArgumentError(ShortlinkError, ValueError):
    """Malformed short code, out-of-range id or malformed URL."""

    pass


class CacheError(ShortlinkError):
    """A cache backend operation failed or timed out."""

    pass
