"""
Data Models Package

This package contains all Pydantic models used by the ledger engine.
All data flowing through the system must conform to these schemas.
"""

from splitly.models.ledger import (
    Balance,
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    Friend,
    FriendRequest,
    FriendRequestStatus,
    Group,
    Member,
    Settlement,
    SettlementDraft,
    SimplifiedDebt,
    Split,
    SplitInput,
    SplitType,
)
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
from splitly.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Balance",
    "Expense",
    "ExpenseCategory",
    "ExpenseDraft",
    "Friend",
    "FriendRequest",
    "FriendRequestStatus",
    "Group",
    "Member",
    "Settlement",
    "SettlementDraft",
    "SimplifiedDebt",
    "Split",
    "SplitInput",
    "SplitType",
    # Channel events
    "ChannelEvent",
    "ExpenseAdded",
    "ExpenseDeleted",
    "FriendRemoved",
    "FriendRequestAccepted",
    "FriendRequestReceived",
    "SettlementAdded",
    "SettlementDeleted",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
