"""
Backend API Services Package

Provides the abstract backend interface, the httpx implementation and the
wire-format conversions between backend JSON and the internal models.
"""

from splitly.services.api.interface import (
    AuthorizationError,
    BackendConnectionError,
    BackendError,
    LedgerBackend,
    NotFoundError,
    WireFormatError,
)
from splitly.services.api.http_backend import HttpLedgerBackend

__all__ = [
    # Interface
    "LedgerBackend",
    # Exceptions
    "AuthorizationError",
    "BackendConnectionError",
    "BackendError",
    "NotFoundError",
    "WireFormatError",
    # REST implementation
    "HttpLedgerBackend",
]
