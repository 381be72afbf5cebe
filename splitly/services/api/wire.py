"""
Wire Format Conversion

The backend speaks snake_case JSON with its own naming (``user_id``,
``from_user``, ``avatar_url``) and sends decimals as strings. This module
is the only place that knows those shapes: payloads are parsed into the
internal models on the way in and drafts are serialized on the way out.

DESIGN DECISION: Parsing is strict about identity fields (ids, payer,
amount) and lenient about decoration (dates, avatars, notes). A record
without an id or amount is useless to the ledger; a record with an odd
date format is not.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from splitly.ledger.money import safe_quantize
from splitly.models.ledger import (
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    Friend,
    FriendRequest,
    Group,
    Member,
    Settlement,
    SettlementDraft,
    Split,
)
from splitly.services.api.interface import WireFormatError


# =============================================================================
# SCALAR HELPERS
# =============================================================================

def _require(raw: dict, key: str, entity: str) -> Any:
    value = raw.get(key)
    if value is None or value == "":
        raise WireFormatError(f"{entity} payload is missing '{key}'")
    return value


def _require_amount(raw: dict, key: str, entity: str) -> Decimal:
    amount = safe_quantize(_require(raw, key, entity))
    if amount is None:
        raise WireFormatError(f"{entity} payload has a non-numeric '{key}': {raw.get(key)!r}")
    return amount


def _safe_date(value) -> Optional[date]:
    """Accept 'YYYY-MM-DD' or a full ISO timestamp; None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _safe_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _safe_category(value) -> Optional[ExpenseCategory]:
    try:
        return ExpenseCategory(value) if value else None
    except ValueError:
        return ExpenseCategory.OTHER


def _build(model, entity: str, **fields):
    """Construct a model, converting pydantic errors into WireFormatError."""
    try:
        return model(**fields)
    except ValidationError as e:
        raise WireFormatError(f"Invalid {entity} payload: {e.error_count()} errors") from e


def _as_dict(raw, entity: str) -> dict:
    if not isinstance(raw, dict):
        raise WireFormatError(f"{entity} payload must be an object, got {type(raw).__name__}")
    return raw


# =============================================================================
# INBOUND
# =============================================================================

def parse_member(raw: dict) -> Member:
    raw = _as_dict(raw, "member")
    return _build(
        Member,
        "member",
        id=str(_require(raw, "id", "member")),
        display_name=raw.get("name") or "",
        avatar=raw.get("avatar_url"),
        email=raw.get("email"),
    )


def parse_group(raw: dict) -> Group:
    raw = _as_dict(raw, "group")
    return _build(
        Group,
        "group",
        id=str(_require(raw, "id", "group")),
        name=raw.get("name") or "",
        description=raw.get("description"),
        image_url=raw.get("image_url"),
        members=[parse_member(m) for m in raw.get("members") or []],
        currency=raw.get("currency") or "USD",
        invite_code=raw.get("invite_code"),
        created_at=_safe_datetime(raw.get("created_at")),
        updated_at=_safe_datetime(raw.get("updated_at")),
    )


def parse_split(raw: dict) -> Split:
    raw = _as_dict(raw, "split")
    return _build(
        Split,
        "split",
        member_id=str(_require(raw, "user_id", "split")),
        amount=_require_amount(raw, "amount", "split"),
        percentage=safe_quantize(raw.get("percentage")),
    )


def parse_expense(raw: dict) -> Expense:
    """
    Parse an expense as sent by ``GET /expenses/group/:id``, ``POST
    /expenses`` and the ``expense-added`` event.
    """
    raw = _as_dict(raw, "expense")
    return _build(
        Expense,
        "expense",
        id=str(_require(raw, "id", "expense")),
        group_id=str(_require(raw, "group_id", "expense")),
        description=raw.get("description") or "",
        amount=_require_amount(raw, "amount", "expense"),
        currency=raw.get("currency") or "USD",
        paid_by=str(_require(raw, "paid_by", "expense")),
        split_type=raw.get("split_type") or "equal",
        splits=[parse_split(s) for s in raw.get("splits") or []],
        category=_safe_category(raw.get("category")),
        occurred_on=_safe_date(raw.get("date")),
        created_at=_safe_datetime(raw.get("created_at")),
        notes=raw.get("notes"),
    )


def parse_settlement(raw: dict) -> Settlement:
    raw = _as_dict(raw, "settlement")
    return _build(
        Settlement,
        "settlement",
        id=str(_require(raw, "id", "settlement")),
        group_id=str(_require(raw, "group_id", "settlement")),
        from_member=str(_require(raw, "from_user", "settlement")),
        to_member=str(_require(raw, "to_user", "settlement")),
        amount=_require_amount(raw, "amount", "settlement"),
        currency=raw.get("currency") or "USD",
        occurred_on=_safe_date(raw.get("date")),
        created_at=_safe_datetime(raw.get("created_at")),
        notes=raw.get("notes"),
    )


def parse_friend(raw: dict) -> Friend:
    raw = _as_dict(raw, "friend")
    friend_id = str(_require(raw, "id", "friend"))
    return _build(
        Friend,
        "friend",
        id=friend_id,
        friend_id=str(raw.get("friend_user_id") or friend_id),
        display_name=raw.get("name") or "",
        email=raw.get("email"),
        avatar=raw.get("linked_user_avatar") or raw.get("avatar_url"),
        added_at=_safe_datetime(raw.get("added_at")),
    )


def parse_friend_request(raw: dict) -> FriendRequest:
    raw = _as_dict(raw, "friend request")
    return _build(
        FriendRequest,
        "friend request",
        id=str(_require(raw, "id", "friend request")),
        from_user=str(_require(raw, "from_user_id", "friend request")),
        to_user=str(_require(raw, "to_user_id", "friend request")),
        status=raw.get("status") or "pending",
        created_at=_safe_datetime(raw.get("created_at")),
        from_username=raw.get("from_username"),
        from_avatar=raw.get("from_avatar"),
        to_username=raw.get("to_username"),
        to_avatar=raw.get("to_avatar"),
    )


def parse_friend_requests(response: dict) -> list[FriendRequest]:
    """Flatten the ``{received, sent}`` response into one list."""
    response = _as_dict(response, "friend requests")
    return [
        parse_friend_request(r)
        for r in (response.get("received") or []) + (response.get("sent") or [])
    ]


# =============================================================================
# OUTBOUND
# =============================================================================

def _decimal_to_wire(value: Optional[Decimal]) -> Optional[float]:
    # The backend expects JSON numbers for amounts.
    return float(value) if value is not None else None


def expense_draft_to_wire(draft: ExpenseDraft) -> dict:
    """Body of ``POST /expenses``."""
    return {
        "group_id": draft.group_id,
        "description": draft.description,
        "amount": _decimal_to_wire(draft.amount),
        "currency": draft.currency,
        "paid_by": draft.paid_by,
        "split_type": draft.split_type.value,
        "category": draft.category.value if draft.category else None,
        "date": draft.occurred_on.isoformat() if draft.occurred_on else None,
        "notes": draft.notes,
        "splits": [
            {
                "user_id": split.member_id,
                "amount": _decimal_to_wire(split.amount),
                "percentage": _decimal_to_wire(split.percentage),
            }
            for split in draft.splits
        ],
    }


def settlement_draft_to_wire(draft: SettlementDraft) -> dict:
    """Body of ``POST /settlements``."""
    return {
        "group_id": draft.group_id,
        "from_user": draft.from_member,
        "to_user": draft.to_member,
        "amount": _decimal_to_wire(draft.amount),
        "currency": draft.currency,
        "date": draft.occurred_on.isoformat() if draft.occurred_on else None,
        "notes": draft.notes,
    }
