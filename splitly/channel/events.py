"""
Inbound Event Parsing

Turns a raw (event name, payload) pair from the transport into a typed
channel event. Record payloads go through the same wire parsers as REST
responses, so an expense looks the same whether it was fetched or pushed.
"""

from typing import Any, Callable

from splitly.models.events import (
    ChannelEvent,
    ExpenseAdded,
    ExpenseDeleted,
    FriendRemoved,
    FriendRequestAccepted,
    FriendRequestReceived,
    SettlementAdded,
    SettlementDeleted,
)
from splitly.services.api.interface import WireFormatError
from splitly.services.api.wire import parse_expense, parse_friend_request, parse_settlement


def _payload(event_name: str, payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise WireFormatError(f"'{event_name}' payload must be an object")
    return payload


def _record_id(event_name: str, payload: dict, key: str = "id") -> str:
    value = payload.get(key)
    if value is None or value == "":
        raise WireFormatError(f"'{event_name}' payload is missing '{key}'")
    return str(value)


_PARSERS: dict[str, Callable[[dict], ChannelEvent]] = {
    ExpenseAdded.event_name: lambda p: ExpenseAdded(
        expense=parse_expense(p.get("expense"))
    ),
    ExpenseDeleted.event_name: lambda p: ExpenseDeleted(
        id=_record_id(ExpenseDeleted.event_name, p)
    ),
    SettlementAdded.event_name: lambda p: SettlementAdded(
        settlement=parse_settlement(p.get("settlement"))
    ),
    SettlementDeleted.event_name: lambda p: SettlementDeleted(
        id=_record_id(SettlementDeleted.event_name, p)
    ),
    FriendRequestReceived.event_name: lambda p: FriendRequestReceived(
        request=parse_friend_request(p.get("request"))
    ),
    FriendRequestAccepted.event_name: lambda p: FriendRequestAccepted(
        request_id=_record_id(FriendRequestAccepted.event_name, p, "requestId")
    ),
    FriendRemoved.event_name: lambda p: FriendRemoved(
        friend_user_id=_record_id(FriendRemoved.event_name, p, "friendUserId")
    ),
}


def parse_channel_event(event_name: str, payload: Any) -> ChannelEvent:
    """
    Parse one inbound event.

    Raises:
        WireFormatError: If the event name is unknown or the payload does
            not carry a usable record
    """
    parser = _PARSERS.get(event_name)
    if parser is None:
        raise WireFormatError(f"Unknown channel event '{event_name}'")
    return parser(_payload(event_name, payload))
