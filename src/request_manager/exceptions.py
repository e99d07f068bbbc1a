"""
Request Manager exception hierarchy.

None of these are raised out of the manager's public operations; they are
delivered through the error event or as the error part of a result.
"""

from typing import Optional


class RequestManagerError(Exception):
    """Base exception for all Request Manager errors."""


class ConfigurationError(RequestManagerError, ValueError):
    """Reported when a run is started with an invalid configuration."""


class WaitTimeError(RequestManagerError, ValueError):
    """Reported when update_wait_time() receives a negative value."""


class TransportError(RequestManagerError):
    """Raised by a transport when a request cannot be completed."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url
