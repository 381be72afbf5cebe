"""
Session Orchestrator for Splitly Ledger Sync

This module ties together all the components and ties their lifetime to
the signed-in session:
1. Sign-in (token stored → channel connected → store started and loaded)
2. Sign-out (store stopped → channel torn down → token forgotten)

DESIGN DECISION: There are no module-level singletons. Every component is
constructed here and injected, so two sessions (or two tests) never share
a cache, a room set or a transport.
"""

from typing import Optional

from splitly.audit import AuditLogger, configure_logging
from splitly.channel import ChannelConnectionManager
from splitly.channel.manager import TransportFactory
from splitly.config import Settings, get_settings
from splitly.services.api import HttpLedgerBackend, LedgerBackend
from splitly.services.auth import CredentialStore, InMemoryCredentialStore
from splitly.store import LedgerStore


class LedgerSession:
    """
    One signed-in user's ledger: credentials, channel and store.

    Usage:
        session = create_app_components()
        await session.sign_in(token, user_id)
        session.store.simplified_debts(group_id)
        await session.sign_out()
    """

    def __init__(
        self,
        credentials: CredentialStore,
        backend: LedgerBackend,
        channel: ChannelConnectionManager,
        store: LedgerStore,
        audit_logger: AuditLogger,
    ):
        self.credentials = credentials
        self.backend = backend
        self.channel = channel
        self.store = store
        self.audit_logger = audit_logger

    @property
    def is_signed_in(self) -> bool:
        return self.store.user_id is not None

    async def sign_in(self, token: str, user_id: str) -> None:
        """
        Start the session for ``user_id``.

        The channel connect is best-effort: if it gives up, the store still
        loads over REST and the user can reload manually.
        """
        await self.credentials.set_token(token)
        await self.channel.connect()
        await self.store.start(user_id)

    async def sign_out(self) -> None:
        """Tear down everything tied to the session."""
        await self.store.stop()
        await self.channel.disconnect()
        await self.credentials.clear()

    async def close(self) -> None:
        """Sign out and release the HTTP client."""
        if self.is_signed_in:
            await self.sign_out()
        if isinstance(self.backend, HttpLedgerBackend):
            await self.backend.aclose()


def create_app_components(
    settings: Optional[Settings] = None,
    credentials: Optional[CredentialStore] = None,
    backend: Optional[LedgerBackend] = None,
    transport_factory: Optional[TransportFactory] = None,
) -> LedgerSession:
    """
    Factory function to create all application components.

    Args:
        settings: Configuration (defaults to the cached environment settings)
        credentials: Token store. Defaults to an in-memory store.
        backend: REST collaborator. Defaults to the httpx client.
        transport_factory: Channel transport builder. Defaults to Socket.IO.

    Returns:
        A signed-out LedgerSession
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)
    audit_logger = AuditLogger()

    credentials = credentials or InMemoryCredentialStore()
    backend = backend or HttpLedgerBackend(credentials, settings.api)
    channel = ChannelConnectionManager(
        credentials,
        settings.channel,
        transport_factory=transport_factory,
        audit_logger=audit_logger,
    )
    store = LedgerStore(backend, channel, audit_logger=audit_logger)

    return LedgerSession(credentials, backend, channel, store, audit_logger)
