"""
Channel Transport

A transport is one live bidirectional event connection. The connection
manager creates a fresh transport for every (re)connect and is the only
holder of its handle.

The base class owns listener fan-out: several callbacks per event name,
plain or coroutine functions, delivered in registration order. A failing
callback is reported and does not stop delivery to the others.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

import socketio

from splitly.audit import AuditLogger
from splitly.config import ChannelSettings
from splitly.models.audit import AuditEventBuilder


EventCallback = Callable[[Any], Union[None, Awaitable[None]]]
DropHandler = Callable[[str], None]


class TransportError(Exception):
    """The transport could not be opened (handshake rejected, unreachable)."""
    pass


class Transport(ABC):
    """
    Abstract event transport.
    """

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._callbacks: dict[str, list[EventCallback]] = {}
        self._on_drop: Optional[DropHandler] = None
        self._audit_logger = audit_logger or AuditLogger()

    @property
    @abstractmethod
    def connected(self) -> bool:
        pass

    @abstractmethod
    async def open(self, url: str, token: str) -> None:
        """
        Open the connection, attaching ``token`` to the handshake.

        Raises:
            TransportError: If the handshake is rejected or the peer is
                unreachable
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Must not report a drop."""
        pass

    @abstractmethod
    async def emit(self, event: str, data: Any = None) -> None:
        pass

    def set_drop_handler(self, handler: Optional[DropHandler]) -> None:
        """Register the callback invoked when an open connection is lost."""
        self._on_drop = handler

    def _notify_drop(self, reason: str) -> None:
        if self._on_drop is not None:
            self._on_drop(reason)

    def on(self, event: str, callback: EventCallback) -> None:
        callbacks = self._callbacks.setdefault(event, [])
        if callback not in callbacks:
            callbacks.append(callback)

    def off(self, event: str, callback: Optional[EventCallback] = None) -> None:
        if callback is None:
            self._callbacks.pop(event, None)
            return
        callbacks = self._callbacks.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            self._callbacks.pop(event, None)

    def has_listeners(self, event: str) -> bool:
        return bool(self._callbacks.get(event))

    async def dispatch(self, event: str, payload: Any = None) -> None:
        """Deliver an inbound event to every callback registered for it."""
        for callback in list(self._callbacks.get(event, [])):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._audit_logger.log(AuditEventBuilder.listener_failed(event, str(e)))


class SocketIOTransport(Transport):
    """
    Socket.IO transport backed by python-socketio's AsyncClient.

    The client's own reconnection is disabled: retry policy belongs to the
    connection manager, which replaces the whole transport on reconnect.
    """

    def __init__(
        self,
        settings: ChannelSettings,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._settings = settings
        self._client = socketio.AsyncClient(reconnection=False, logger=False)
        self._client.on("disconnect", self._handle_disconnect)
        self._relayed: set[str] = set()
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._client.connected

    async def open(self, url: str, token: str) -> None:
        try:
            await self._client.connect(
                url,
                auth={"token": token},
                transports=self._settings.transports_list,
                wait_timeout=self._settings.connect_timeout_seconds,
            )
        except socketio.exceptions.ConnectionError as e:
            raise TransportError(f"Channel handshake failed: {e}") from e

    async def close(self) -> None:
        self._closing = True
        if not self._client.connected:
            return
        try:
            await self._client.disconnect()
        except socketio.exceptions.SocketIOError as e:
            raise TransportError(f"Channel close failed: {e}") from e

    async def emit(self, event: str, data: Any = None) -> None:
        try:
            await self._client.emit(event, data)
        except socketio.exceptions.SocketIOError as e:
            raise TransportError(f"Emit of '{event}' failed: {e}") from e

    def on(self, event: str, callback: EventCallback) -> None:
        super().on(event, callback)
        if event not in self._relayed:
            # python-socketio keeps one handler per event; fan-out happens in dispatch().
            self._client.on(event, self._relay_for(event))
            self._relayed.add(event)

    def _relay_for(self, event: str):
        async def relay(*args):
            await self.dispatch(event, args[0] if args else None)
        return relay

    async def _handle_disconnect(self, *args) -> None:
        if self._closing:
            return
        reason = str(args[0]) if args else "transport closed"
        self._notify_drop(reason)
