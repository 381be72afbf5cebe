"""
Real-time Channel Package

Connection lifecycle, room membership and listener buffering for the
event channel that keeps devices in sync.
"""

from splitly.channel.events import parse_channel_event
from splitly.channel.listeners import ListenerRegistry
from splitly.channel.manager import ChannelConnectionManager, ConnectionState
from splitly.channel.rooms import RoomMembershipTracker
from splitly.channel.transport import SocketIOTransport, Transport, TransportError

__all__ = [
    "ChannelConnectionManager",
    "ConnectionState",
    "ListenerRegistry",
    "RoomMembershipTracker",
    "SocketIOTransport",
    "Transport",
    "TransportError",
    "parse_channel_event",
]
