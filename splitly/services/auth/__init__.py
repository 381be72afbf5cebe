"""Auth collaborator boundary."""

from splitly.services.auth.credentials import CredentialStore, InMemoryCredentialStore

__all__ = ["CredentialStore", "InMemoryCredentialStore"]
