"""Project-native typed exceptions for appliance call failures."""

from __future__ import annotations


class RemoteCallError(Exception):
    """Base exception for adapter-level remote call failures.

    Attributes:
        method: Remote method name that failed, when known.
    """

    def __init__(self, message: str, method: str | None = None):
        super().__init__(message)
        self.method = method


class RemoteConnectionError(RemoteCallError, ConnectionError):
    """Transport-level connectivity failure or non-success HTTP status."""


class RemoteAuthenticationError(RemoteConnectionError):
    """Credentials were rejected by the appliance."""


class RemoteCallTimeoutError(RemoteCallError, TimeoutError):
    """Transport timeout while waiting for an appliance response."""


class RemoteProtocolError(RemoteCallError, ValueError):
    """Response or request contract violation (unknown method, malformed body)."""
