"""
Balance Aggregator

Folds a group's expenses and settlements into one net balance per member.

Rules:
- The payer of an expense is credited the full amount.
- Every split participant is debited their share (the payer usually has a
  share too, so their net is ``amount - own share``).
- A settlement credits the member who paid and debits the member who was
  paid, shrinking what the payer owed.

The fold is a plain sum, so record order never changes the result, and it
runs on integer minor units so the balances always add up to exactly zero.
"""

from typing import Iterable

from splitly.ledger.money import from_minor_units, to_minor_units
from splitly.models.ledger import Balance, Expense, Member, Settlement


def compute_balances(
    expenses: Iterable[Expense],
    members: Iterable[Member],
    settlements: Iterable[Settlement] = (),
) -> list[Balance]:
    """
    Compute every member's net balance.

    Args:
        expenses: Expenses of one group
        members: The group's members. Each gets an entry even with no activity.
        settlements: Settlements of the same group

    Returns:
        Balances for the known members in the given order, followed by any
        member id that only appears in the records (first-seen order).
    """
    totals: dict[str, int] = {member.id: 0 for member in members}

    def post(member_id: str, minor: int) -> None:
        totals[member_id] = totals.get(member_id, 0) + minor

    for expense in expenses:
        post(expense.paid_by, to_minor_units(expense.amount))
        for split in expense.splits:
            post(split.member_id, -to_minor_units(split.amount))

    for settlement in settlements:
        minor = to_minor_units(settlement.amount)
        post(settlement.from_member, minor)
        post(settlement.to_member, -minor)

    return [
        Balance(member_id=member_id, amount=from_minor_units(minor))
        for member_id, minor in totals.items()
    ]
