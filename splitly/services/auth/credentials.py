"""
Credential Store

The auth collaborator issues a bearer token at sign-in; the REST client and
the channel read it from here on every request / connect. Issuing and
refreshing tokens is the collaborator's job, not the engine's.
"""

from abc import ABC, abstractmethod
from typing import Optional


class CredentialStore(ABC):
    """
    Abstract interface for the auth token store.
    
    Implementations may be backed by a keychain, a file or memory.
    """
    
    @abstractmethod
    async def get_token(self) -> Optional[str]:
        """
        Return the current bearer token, or None before sign-in.
        """
        pass
    
    @abstractmethod
    async def set_token(self, token: str) -> None:
        """Store the token issued at sign-in."""
        pass
    
    @abstractmethod
    async def clear(self) -> None:
        """Forget the token (sign-out)."""
        pass


class InMemoryCredentialStore(CredentialStore):
    """Process-local token store."""
    
    def __init__(self, token: Optional[str] = None):
        self._token = token or None
    
    async def get_token(self) -> Optional[str]:
        return self._token
    
    async def set_token(self, token: str) -> None:
        self._token = token or None
    
    async def clear(self) -> None:
        self._token = None
