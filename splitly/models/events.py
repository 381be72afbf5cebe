"""
Channel Event Models

Inbound real-time events as typed, tagged variants. The channel hands the
store raw (event name, payload) pairs; splitly.channel.events turns them
into one of these before anything touches the cache, so the store's apply
logic dispatches on types instead of strings.
"""

from typing import ClassVar, Union

from pydantic import BaseModel, ConfigDict

from splitly.models.ledger import Expense, FriendRequest, Settlement


# Outbound room events
JOIN_GROUP = "join-group"
LEAVE_GROUP = "leave-group"


class _ChannelEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_name: ClassVar[str]


class ExpenseAdded(_ChannelEvent):
    event_name: ClassVar[str] = "expense-added"

    expense: Expense


class ExpenseDeleted(_ChannelEvent):
    event_name: ClassVar[str] = "expense-deleted"

    id: str


class SettlementAdded(_ChannelEvent):
    event_name: ClassVar[str] = "settlement-added"

    settlement: Settlement


class SettlementDeleted(_ChannelEvent):
    event_name: ClassVar[str] = "settlement-deleted"

    id: str


class FriendRequestReceived(_ChannelEvent):
    event_name: ClassVar[str] = "friend-request-received"

    request: FriendRequest


class FriendRequestAccepted(_ChannelEvent):
    event_name: ClassVar[str] = "friend-request-accepted"

    request_id: str


class FriendRemoved(_ChannelEvent):
    event_name: ClassVar[str] = "friend-removed"

    friend_user_id: str


ChannelEvent = Union[
    ExpenseAdded,
    ExpenseDeleted,
    SettlementAdded,
    SettlementDeleted,
    FriendRequestReceived,
    FriendRequestAccepted,
    FriendRemoved,
]

LEDGER_EVENTS: tuple[type, ...] = (
    ExpenseAdded,
    ExpenseDeleted,
    SettlementAdded,
    SettlementDeleted,
)

SOCIAL_EVENTS: tuple[type, ...] = (
    FriendRequestReceived,
    FriendRequestAccepted,
    FriendRemoved,
)

INBOUND_EVENT_NAMES: tuple[str, ...] = tuple(
    event_type.event_name for event_type in LEDGER_EVENTS + SOCIAL_EVENTS
)
