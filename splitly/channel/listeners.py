"""
Listener Registry

Buffers event-name → callback registrations so they outlive any single
transport. Registrations made before a transport exists, or while one is
being replaced, are replayed onto every newly opened transport.
"""

from typing import TYPE_CHECKING, Optional

from splitly.channel.transport import EventCallback, Transport

if TYPE_CHECKING:
    from splitly.channel.manager import ChannelConnectionManager


class ListenerRegistry:
    """
    Event name → ordered set of callbacks.

    The registry never holds a transport handle of its own; it reaches the
    live transport through the manager's current reference.
    """

    def __init__(self, manager: "ChannelConnectionManager"):
        self._manager = manager
        self._callbacks: dict[str, dict[EventCallback, None]] = {}

    def on(self, event: str, callback: EventCallback) -> None:
        """Register ``callback`` for ``event``; also on the live transport, if any."""
        self._callbacks.setdefault(event, {})[callback] = None
        transport = self._manager.transport
        if transport is not None:
            transport.on(event, callback)

    def off(self, event: str, callback: Optional[EventCallback] = None) -> None:
        """Remove one callback, or every callback for ``event`` when none is given."""
        if callback is None:
            self._callbacks.pop(event, None)
        else:
            callbacks = self._callbacks.get(event, {})
            callbacks.pop(callback, None)
            if not callbacks:
                self._callbacks.pop(event, None)

        transport = self._manager.transport
        if transport is not None:
            transport.off(event, callback)

    def callbacks(self, event: str) -> list[EventCallback]:
        return list(self._callbacks.get(event, {}))

    @property
    def events(self) -> list[str]:
        return list(self._callbacks)

    def replay(self, transport: Transport) -> int:
        """Register every buffered callback on ``transport``. Returns the event count."""
        for event, callbacks in self._callbacks.items():
            for callback in callbacks:
                transport.on(event, callback)
        return len(self._callbacks)

    def clear(self) -> None:
        self._callbacks.clear()
