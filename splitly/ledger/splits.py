"""
Split Calculator

Builds the Split records for a new expense from the amount, the
participants and the split kind.

Equal and percentage splits are computed in minor units and the rounding
leftovers are handed out one cent at a time, so the splits of an equal
expense always add up to the expense amount exactly.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from splitly.ledger.money import from_minor_units, quantize, to_minor_units
from splitly.models.ledger import Split, SplitInput, SplitType


def _equal_splits(amount: Decimal, member_ids: Sequence[str]) -> list[Split]:
    if not member_ids:
        return []
    total = to_minor_units(amount)
    share, remainder = divmod(total, len(member_ids))
    return [
        Split(member_id=member_id, amount=from_minor_units(share + (1 if index < remainder else 0)))
        for index, member_id in enumerate(member_ids)
    ]


def _percentage_splits(amount: Decimal, custom_splits: Sequence[SplitInput]) -> list[Split]:
    total = to_minor_units(amount)
    percentages = [split.percentage or Decimal("0") for split in custom_splits]

    exact = [Decimal(total) * pct / 100 for pct in percentages]
    floors = [int(value) for value in exact]
    target = int(
        (Decimal(total) * sum(percentages, Decimal("0")) / 100).to_integral_value(rounding=ROUND_HALF_UP)
    )
    leftover = target - sum(floors)

    # Largest fractional part first; sorted() is stable so ties keep input order.
    order = sorted(range(len(exact)), key=lambda k: exact[k] - floors[k], reverse=True)
    for k in order[:max(0, leftover)]:
        floors[k] += 1

    return [
        Split(
            member_id=split.member_id,
            amount=from_minor_units(minor),
            percentage=split.percentage,
        )
        for split, minor in zip(custom_splits, floors)
    ]


def calculate_splits(
    amount: Decimal,
    member_ids: Sequence[str],
    split_type: SplitType,
    custom_splits: Optional[Sequence[SplitInput]] = None,
) -> list[Split]:
    """
    Compute the splits for an expense.

    Args:
        amount: Expense total
        member_ids: Participants of an equal split
        split_type: How to divide the amount
        custom_splits: Per-member percentages or amounts for the
            percentage and exact kinds

    Returns:
        The splits, or an empty list when a custom kind has no custom input.
    """
    split_type = SplitType(split_type)

    if split_type == SplitType.EQUAL:
        return _equal_splits(amount, member_ids)

    if not custom_splits:
        return []

    if split_type == SplitType.PERCENTAGE:
        return _percentage_splits(amount, custom_splits)

    return [
        Split(member_id=split.member_id, amount=quantize(split.amount or 0))
        for split in custom_splits
    ]
