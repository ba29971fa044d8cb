"""Error types raised by the discovery client"""

from typing import Optional


class DiscoveryError(Exception):
    """Base exception for all discovery client errors."""


class ValidationError(DiscoveryError, ValueError):
    """A required argument is missing or empty."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PreconditionError(DiscoveryError):
    """The store is not provisioned for the requested operation."""


class NotFoundError(DiscoveryError, LookupError):
    """An enumeration returned no entries."""


class StoreError(DiscoveryError):
    """A coordination store call failed.

    Wraps the underlying client exception together with the operation and
    path that triggered it.
    """

    def __init__(self, operation: str, path: Optional[str], cause: BaseException,
                 no_node: bool = False):
        self.operation = operation
        self.path = path
        self.cause = cause
        self.no_node = no_node
        super().__init__(f"{operation} failed for '{path}': {cause!r}")
