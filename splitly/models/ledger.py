"""
Core Data Models for Splitly Ledger Sync

These models define the internal shape of everything the ledger engine
touches. They are designed to:
1. Keep money exact (Decimal with two places, never float)
2. Isolate the engine from backend field naming (see services/api/wire.py)
3. Be cheap to rebuild wholesale on every reload

DESIGN DECISION: Records fetched from the backend (Member, Expense,
Settlement, Group) are treated as immutable snapshots. The client never edits
them in place; it replaces them on reload or merges channel events by id.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SplitType(str, Enum):
    """How an expense amount is divided among participants."""
    EQUAL = "equal"
    PERCENTAGE = "percentage"
    EXACT = "exact"


class ExpenseCategory(str, Enum):
    """Expense category tag."""
    FOOD = "food"
    TRANSPORT = "transport"
    ACCOMMODATION = "accommodation"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    UTILITIES = "utilities"
    OTHER = "other"


class FriendRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# =============================================================================
# PEOPLE
# =============================================================================

class Member(BaseModel):
    """
    A group member as returned by the backend.

    Immutable once fetched; refreshed wholesale on reload.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque member identifier"
    )
    display_name: str = Field(
        default="",
        description="Name shown to other members"
    )
    avatar: Optional[str] = Field(
        default=None,
        description="Avatar URL or asset reference"
    )
    email: Optional[str] = None


class Friend(BaseModel):
    """A friend-list entry, optionally linked to a registered user."""
    model_config = ConfigDict(frozen=True)

    id: str
    friend_id: str = Field(
        ...,
        description="Linked user id (falls back to the entry id)"
    )
    display_name: str = ""
    email: Optional[str] = None
    avatar: Optional[str] = None
    added_at: Optional[datetime] = None


class FriendRequest(BaseModel):
    """A pending, accepted or rejected friend request."""
    model_config = ConfigDict(frozen=True)

    id: str
    from_user: str
    to_user: str
    status: FriendRequestStatus = FriendRequestStatus.PENDING
    created_at: Optional[datetime] = None
    from_username: Optional[str] = None
    from_avatar: Optional[str] = None
    to_username: Optional[str] = None
    to_avatar: Optional[str] = None


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Split(BaseModel):
    """
    One member's share of one expense.

    Split member ids are unique within an expense.
    """
    model_config = ConfigDict(frozen=True)

    member_id: str = Field(..., min_length=1)
    amount: Decimal = Field(
        ...,
        decimal_places=2,
        description="Share of the expense owed by this member"
    )
    percentage: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        description="Percentage of the total, for percentage splits"
    )


class Expense(BaseModel):
    """
    An expense paid by one member and shared by the split participants.

    CRITICAL: The sum of split amounts must equal ``amount`` within 0.01.
    That invariant is enforced by the producer (see validation/), the
    balance aggregator does not re-check it.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    description: str = ""
    amount: Decimal = Field(
        ...,
        decimal_places=2,
        description="Total amount paid"
    )
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3
    )
    paid_by: str = Field(
        ...,
        min_length=1,
        description="Member id of the payer"
    )
    split_type: SplitType = SplitType.EQUAL
    splits: tuple[Split, ...] = ()
    category: Optional[ExpenseCategory] = None
    occurred_on: Optional[date] = None
    created_at: Optional[datetime] = None
    notes: Optional[str] = None


class Settlement(BaseModel):
    """
    A real-world payment that already happened between two members.

    It reduces what ``from_member`` owes ``to_member``.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    from_member: str = Field(
        ...,
        min_length=1,
        description="Member who paid"
    )
    to_member: str = Field(
        ...,
        min_length=1,
        description="Member who received the payment"
    )
    amount: Decimal = Field(..., decimal_places=2)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    occurred_on: Optional[date] = None
    created_at: Optional[datetime] = None
    notes: Optional[str] = None


class Group(BaseModel):
    """
    A group of members sharing expenses.

    Expenses and settlements reference the group by id; they are not
    contained in it.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    description: Optional[str] = None
    image_url: Optional[str] = None
    members: tuple[Member, ...] = ()
    currency: str = Field(default="USD", min_length=3, max_length=3)
    invite_code: Optional[str] = Field(
        default=None,
        description="Opaque code owned by the backend"
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def member_ids(self) -> list[str]:
        return [member.id for member in self.members]


# =============================================================================
# DERIVED VIEWS (never persisted)
# =============================================================================

class Balance(BaseModel):
    """
    A member's net position in a group.

    Positive: the group owes this member. Negative: the member owes the group.
    """
    model_config = ConfigDict(frozen=True)

    member_id: str
    amount: Decimal


class SimplifiedDebt(BaseModel):
    """A suggested transfer: ``from_member`` should pay ``to_member``."""
    model_config = ConfigDict(frozen=True)

    from_member: str
    to_member: str
    amount: Decimal = Field(..., gt=0)


# =============================================================================
# USER INPUT (validated before submission)
# =============================================================================

class SplitInput(BaseModel):
    """A custom split entered by the user, before amounts are computed."""

    member_id: str
    amount: Optional[Decimal] = None
    percentage: Optional[Decimal] = None


class ExpenseDraft(BaseModel):
    """
    An expense the user wants to add.

    CRITICAL: This is PROPOSED data. Fields are deliberately loose so the
    validator can report every problem at once instead of failing on the
    first one. Only a draft that passes ExpenseValidator is submitted.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    group_id: str
    description: str = ""
    amount: Decimal = Decimal("0")
    currency: str = "USD"
    paid_by: Optional[str] = None
    split_type: SplitType = SplitType.EQUAL
    splits: list[Split] = Field(default_factory=list)
    category: Optional[ExpenseCategory] = None
    occurred_on: Optional[date] = None
    notes: Optional[str] = None


class SettlementDraft(BaseModel):
    """A settlement the user wants to record."""
    model_config = ConfigDict(str_strip_whitespace=True)

    group_id: str
    from_member: Optional[str] = None
    to_member: Optional[str] = None
    amount: Decimal = Decimal("0")
    currency: str = "USD"
    occurred_on: Optional[date] = None
    notes: Optional[str] = None
