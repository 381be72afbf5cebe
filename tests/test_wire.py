"""
Tests for backend wire-format conversion and channel event parsing.
"""

import pytest
from datetime import date
from decimal import Decimal

from splitly.channel import parse_channel_event
from splitly.models.events import (
    ExpenseAdded,
    ExpenseDeleted,
    FriendRemoved,
    FriendRequestAccepted,
    FriendRequestReceived,
    SettlementAdded,
    SettlementDeleted,
)
from splitly.models.ledger import (
    ExpenseCategory,
    ExpenseDraft,
    SettlementDraft,
    Split,
    SplitType,
)
from splitly.services.api import WireFormatError
from splitly.services.api.wire import (
    expense_draft_to_wire,
    parse_expense,
    parse_friend_requests,
    parse_group,
    parse_settlement,
    settlement_draft_to_wire,
)


EXPENSE_PAYLOAD = {
    "id": "e1",
    "group_id": "g1",
    "description": "Groceries",
    "amount": "45.50",
    "currency": "EUR",
    "paid_by": "u1",
    "split_type": "equal",
    "category": "food",
    "date": "2024-03-01T00:00:00.000Z",
    "created_at": "2024-03-01T12:30:00Z",
    "splits": [
        {"user_id": "u1", "amount": "22.75"},
        {"user_id": "u2", "amount": "22.75"},
    ],
}

SETTLEMENT_PAYLOAD = {
    "id": "s1",
    "group_id": "g1",
    "from_user": "u2",
    "to_user": "u1",
    "amount": 22.75,
    "date": "2024-03-02",
}


class TestInboundParsing:
    """Backend JSON into internal models."""

    def test_parse_expense(self):
        """Field names, string decimals and dates are converted."""
        expense = parse_expense(EXPENSE_PAYLOAD)

        assert expense.id == "e1"
        assert expense.amount == Decimal("45.50")
        assert expense.currency == "EUR"
        assert expense.category == ExpenseCategory.FOOD
        assert expense.occurred_on == date(2024, 3, 1)
        assert [s.member_id for s in expense.splits] == ["u1", "u2"]
        assert expense.splits[0].amount == Decimal("22.75")

    def test_unknown_category_becomes_other(self):
        """Unexpected categories are kept as 'other'."""
        expense = parse_expense({**EXPENSE_PAYLOAD, "category": "pets"})
        assert expense.category == ExpenseCategory.OTHER

    def test_bad_date_is_dropped(self):
        """An unparseable date does not reject the record."""
        expense = parse_expense({**EXPENSE_PAYLOAD, "date": "someday"})
        assert expense.occurred_on is None

    def test_expense_without_id_rejected(self):
        """Identity fields are required."""
        with pytest.raises(WireFormatError):
            parse_expense({**EXPENSE_PAYLOAD, "id": None})

    def test_non_numeric_amount_rejected(self):
        """An amount that isn't a number is a wire error."""
        with pytest.raises(WireFormatError):
            parse_expense({**EXPENSE_PAYLOAD, "amount": "lots"})

    def test_parse_settlement(self):
        """from_user/to_user map to from_member/to_member."""
        settlement = parse_settlement(SETTLEMENT_PAYLOAD)

        assert settlement.from_member == "u2"
        assert settlement.to_member == "u1"
        assert settlement.amount == Decimal("22.75")

    def test_parse_group_members(self):
        """Member name and avatar_url are renamed."""
        group = parse_group({
            "id": "g1",
            "name": "Trip",
            "invite_code": "ABC123",
            "members": [{"id": "u1", "name": "Ann", "avatar_url": "ann.png"}],
        })

        assert group.member_ids == ["u1"]
        assert group.members[0].display_name == "Ann"
        assert group.members[0].avatar == "ann.png"
        assert group.invite_code == "ABC123"

    def test_parse_friend_requests_flattens(self):
        """Received and sent requests come back as one list."""
        requests = parse_friend_requests({
            "received": [{"id": "r1", "from_user_id": "u2", "to_user_id": "u1"}],
            "sent": [{"id": "r2", "from_user_id": "u1", "to_user_id": "u3"}],
        })
        assert [r.id for r in requests] == ["r1", "r2"]

    def test_non_object_payload_rejected(self):
        """Lists and scalars are not records."""
        with pytest.raises(WireFormatError):
            parse_settlement(["not", "a", "dict"])


class TestOutboundSerialization:
    """Drafts into request bodies."""

    def test_expense_body(self):
        """Splits use user_id; amounts are JSON numbers."""
        draft = ExpenseDraft(
            group_id="g1",
            description="Taxi",
            amount=Decimal("20.00"),
            paid_by="u1",
            split_type=SplitType.EXACT,
            category=ExpenseCategory.TRANSPORT,
            occurred_on=date(2024, 5, 4),
            splits=[Split(member_id="u2", amount=Decimal("20.00"))],
        )
        body = expense_draft_to_wire(draft)

        assert body["amount"] == 20.0
        assert body["split_type"] == "exact"
        assert body["category"] == "transport"
        assert body["date"] == "2024-05-04"
        assert body["splits"] == [{"user_id": "u2", "amount": 20.0, "percentage": None}]

    def test_settlement_body(self):
        """from_member/to_member map back to from_user/to_user."""
        draft = SettlementDraft(group_id="g1", from_member="u2", to_member="u1", amount=Decimal("5.25"))
        body = settlement_draft_to_wire(draft)

        assert body["from_user"] == "u2"
        assert body["to_user"] == "u1"
        assert body["amount"] == 5.25


class TestChannelEventParsing:
    """Raw channel events into typed variants."""

    def test_expense_added(self):
        """The embedded expense is parsed like a REST record."""
        event = parse_channel_event("expense-added", {"expense": EXPENSE_PAYLOAD})
        assert isinstance(event, ExpenseAdded)
        assert event.expense.id == "e1"

    def test_deleted_events(self):
        """Delete events carry only the id."""
        assert parse_channel_event("expense-deleted", {"id": "e1"}) == ExpenseDeleted(id="e1")
        assert parse_channel_event("settlement-deleted", {"id": 7}) == SettlementDeleted(id="7")

    def test_settlement_added(self):
        """Settlement payloads use the settlement parser."""
        event = parse_channel_event("settlement-added", {"settlement": SETTLEMENT_PAYLOAD})
        assert isinstance(event, SettlementAdded)

    def test_friend_request_events(self):
        """Friend-request events parse the request or its id."""
        received = parse_channel_event("friend-request-received", {
            "request": {"id": "r1", "from_user_id": "u2", "to_user_id": "u1", "from_username": "bo"},
        })
        accepted = parse_channel_event("friend-request-accepted", {"requestId": "r1"})

        assert isinstance(received, FriendRequestReceived)
        assert received.request.from_username == "bo"
        assert accepted == FriendRequestAccepted(request_id="r1")

    def test_friend_removed(self):
        """The removed friend is identified by their user id."""
        event = parse_channel_event("friend-removed", {"friendUserId": "u9"})
        assert event == FriendRemoved(friend_user_id="u9")

        with pytest.raises(WireFormatError):
            parse_channel_event("friend-removed", {"friendId": "u9"})

    def test_missing_record_is_unparseable(self):
        """An added event without its record is a wire error."""
        with pytest.raises(WireFormatError):
            parse_channel_event("expense-added", {})

    def test_unknown_event_name(self):
        """Names outside the protocol are rejected."""
        with pytest.raises(WireFormatError):
            parse_channel_event("group-renamed", {"id": "g1"})

    def test_event_name_matches_variant(self):
        """Each variant knows its wire name."""
        assert ExpenseAdded.event_name == "expense-added"
        assert FriendRequestAccepted.event_name == "friend-request-accepted"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
