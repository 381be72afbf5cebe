"""Services package: collaborator boundaries (REST backend, auth store)."""

from splitly.services.api import (
    AuthorizationError,
    BackendConnectionError,
    BackendError,
    HttpLedgerBackend,
    LedgerBackend,
    NotFoundError,
    WireFormatError,
)
from splitly.services.auth import CredentialStore, InMemoryCredentialStore

__all__ = [
    # Backend
    "AuthorizationError",
    "BackendConnectionError",
    "BackendError",
    "HttpLedgerBackend",
    "LedgerBackend",
    "NotFoundError",
    "WireFormatError",
    # Auth
    "CredentialStore",
    "InMemoryCredentialStore",
]
