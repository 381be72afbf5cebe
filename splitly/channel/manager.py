"""
Channel Connection Manager

Owns the single live transport to the backend and its lifecycle:

    DISCONNECTED -> CONNECTING -> CONNECTED
    CONNECTED -> RECONNECTING -> CONNECTED     (transient failure)
    any state -> DISCONNECTED                  (teardown, or retries exhausted)

DESIGN DECISION: Retries are bounded. After ``max_reconnect_attempts``
consecutive failures the manager gives up and reports DISCONNECTED instead
of retrying forever in the background; the client falls back to manual
reload until something calls connect() again.

The manager holds no ledger data. The room tracker and listener registry
reach the transport only through ``manager.transport``, so nobody keeps a
handle to a torn-down transport.
"""

import asyncio
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from splitly.audit import AuditLogger
from splitly.channel.listeners import ListenerRegistry
from splitly.channel.rooms import RoomMembershipTracker
from splitly.channel.transport import EventCallback, SocketIOTransport, Transport, TransportError
from splitly.config import ChannelSettings, get_settings
from splitly.models.audit import AuditEventBuilder
from splitly.services.auth import CredentialStore


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


TransportFactory = Callable[[], Transport]


class ChannelConnectionManager:
    """
    Connect/reconnect/disconnect lifecycle for the real-time channel.

    Usage:
        manager = ChannelConnectionManager(credentials)
        manager.on("expense-added", handler)
        await manager.join_group(group_id)
        await manager.connect()
    """

    def __init__(
        self,
        credentials: CredentialStore,
        settings: Optional[ChannelSettings] = None,
        transport_factory: Optional[TransportFactory] = None,
        audit_logger: Optional[AuditLogger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            credentials: Auth store the handshake token is read from
            settings: Channel URL and reconnect policy
            transport_factory: Builds a fresh transport per connect attempt.
                Defaults to Socket.IO.
            audit_logger: Structured event log
            sleep: Awaitable used for the backoff delay
        """
        self._credentials = credentials
        self._settings = settings or get_settings().channel
        self.audit_logger = audit_logger or AuditLogger()
        self._transport_factory = transport_factory or partial(
            SocketIOTransport, self._settings, self.audit_logger
        )
        self._sleep = sleep

        self._transport: Optional[Transport] = None
        self._state = ConnectionState.DISCONNECTED
        self._reconnect_attempts = 0
        self._connect_task: Optional[asyncio.Task] = None

        self.rooms = RoomMembershipTracker(self)
        self.listeners = ListenerRegistry(self)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def transport(self) -> Optional[Transport]:
        """The current transport instance, if any."""
        return self._transport

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def is_connected(self) -> bool:
        return (
            self._state == ConnectionState.CONNECTED
            and self._transport is not None
            and self._transport.connected
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Connect if not already connected.

        Without a credential the manager silently stays DISCONNECTED; that is
        the normal state before sign-in. If a connect or reconnect is already
        in progress, this waits for it instead of starting another.
        """
        if self.is_connected:
            return

        task = self._connect_task
        if task is None or task.done():
            self._reconnect_attempts = 0
            task = asyncio.ensure_future(self._establish(ConnectionState.CONNECTING))
            self._connect_task = task

        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # disconnect() cancelled the attempt; only our own cancellation propagates.
            if not task.cancelled():
                raise

    async def disconnect(self) -> None:
        """
        Tear everything down: transport, room set and listener registry.

        A later connect() starts from a clean slate.
        """
        task = self._connect_task
        self._connect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            await asyncio.wait({task})

        await self._teardown_transport()
        self.rooms.clear()
        self.listeners.clear()
        self._reconnect_attempts = 0
        self._state = ConnectionState.DISCONNECTED
        self.audit_logger.log(AuditEventBuilder.channel_disconnected())

    async def _establish(self, state: ConnectionState) -> None:
        """Open a transport, retrying with backoff until connected or out of attempts."""
        self._state = state
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_reconnect_attempts),
            wait=self._settings.reconnect_wait(),
            retry=retry_if_exception_type(TransportError),
            sleep=self._sleep,
            after=self._record_failed_attempt,
            before_sleep=self._enter_reconnecting,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    opened = await self._attempt_open(attempt.retry_state.attempt_number)
        except RetryError:
            await self._teardown_transport()
            self._state = ConnectionState.DISCONNECTED
            self.audit_logger.log(AuditEventBuilder.channel_retry_exhausted(self._reconnect_attempts))
            return

        if not opened:
            await self._teardown_transport()
            self._state = ConnectionState.DISCONNECTED
            self.audit_logger.log(AuditEventBuilder.channel_skipped_no_credential())

    async def _attempt_open(self, attempt_number: int) -> bool:
        # The token is re-read every attempt; sign-out may have cleared it.
        token = await self._credentials.get_token()
        if not token:
            return False
        self.audit_logger.log(AuditEventBuilder.channel_connecting(self._settings.url, attempt_number))
        await self._open_transport(token)
        return True

    def _record_failed_attempt(self, retry_state: RetryCallState) -> None:
        self._reconnect_attempts = retry_state.attempt_number
        self.audit_logger.log(AuditEventBuilder.channel_connect_failed(
            retry_state.attempt_number,
            self._settings.max_reconnect_attempts,
            str(retry_state.outcome.exception()),
        ))

    def _enter_reconnecting(self, retry_state: RetryCallState) -> None:
        self._state = ConnectionState.RECONNECTING

    async def _open_transport(self, token: str) -> None:
        # Never hold two live transports.
        await self._teardown_transport()

        transport = self._transport_factory()
        self._transport = transport
        listener_events = self.listeners.replay(transport)
        transport.set_drop_handler(partial(self._handle_drop, transport))

        await transport.open(self._settings.url, token)

        self._reconnect_attempts = 0
        self._state = ConnectionState.CONNECTED
        rooms = await self.rooms.replay()
        self.audit_logger.log(AuditEventBuilder.channel_connected(rooms, listener_events))

    async def _teardown_transport(self) -> None:
        transport = self._transport
        self._transport = None
        if transport is None:
            return
        transport.set_drop_handler(None)
        try:
            await transport.close()
        except TransportError as e:
            self.audit_logger.log(AuditEventBuilder.channel_emit_failed("close", str(e)))

    def _handle_drop(self, transport: Transport, reason: str) -> None:
        if transport is not self._transport or self._state != ConnectionState.CONNECTED:
            return
        self.audit_logger.log(AuditEventBuilder.channel_dropped(reason))
        self._state = ConnectionState.RECONNECTING
        self._connect_task = asyncio.ensure_future(self._establish(ConnectionState.RECONNECTING))

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------

    async def emit(self, event: str, data: Any = None) -> bool:
        """
        Emit on the live transport.

        Returns False (and sends nothing) while not connected or when the
        transport rejects the emit; reconnect handling recovers from drops.
        """
        if not self.is_connected:
            return False
        try:
            await self._transport.emit(event, data)
        except TransportError as e:
            self.audit_logger.log(AuditEventBuilder.channel_emit_failed(event, str(e)))
            return False
        return True

    async def join_group(self, group_id: str) -> None:
        await self.rooms.join_group(group_id)

    async def leave_group(self, group_id: str) -> None:
        await self.rooms.leave_group(group_id)

    def on(self, event: str, callback: EventCallback) -> None:
        self.listeners.on(event, callback)

    def off(self, event: str, callback: Optional[EventCallback] = None) -> None:
        self.listeners.off(event, callback)
