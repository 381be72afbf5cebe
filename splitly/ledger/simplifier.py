"""
Debt Simplifier

Turns net balances into a short list of suggested transfers.

DESIGN DECISION: This is a greedy two-cursor match, NOT a minimum
transaction-count solver. The largest creditor is paired with the largest
debtor until one of them is settled, then the cursor moves on. Results are
deterministic: ties keep input order because Python's sort is stable, and
callers may rely on the exact pairings it produces.
"""

from typing import Iterable

from splitly.ledger.money import SETTLE_TOLERANCE, from_minor_units, to_minor_units
from splitly.models.ledger import Balance, SimplifiedDebt


def simplify_debts(balances: Iterable[Balance]) -> list[SimplifiedDebt]:
    """
    Suggest transfers that bring every balance back to zero.

    Balances within 0.01 of zero are treated as settled. Every emitted
    transfer is directed from a debtor to a creditor and is larger than 0.01.
    """
    positions = [(b.member_id, to_minor_units(b.amount)) for b in balances]

    creditors = [[member_id, minor] for member_id, minor in positions if minor > SETTLE_TOLERANCE]
    debtors = [[member_id, minor] for member_id, minor in positions if minor < -SETTLE_TOLERANCE]
    creditors.sort(key=lambda entry: -entry[1])
    debtors.sort(key=lambda entry: entry[1])

    debts: list[SimplifiedDebt] = []
    i = j = 0

    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]
        amount = min(creditor[1], -debtor[1])

        if amount > SETTLE_TOLERANCE:
            debts.append(SimplifiedDebt(
                from_member=debtor[0],
                to_member=creditor[0],
                amount=from_minor_units(amount),
            ))

        creditor[1] -= amount
        debtor[1] += amount

        if creditor[1] < SETTLE_TOLERANCE:
            i += 1
        if debtor[1] > -SETTLE_TOLERANCE:
            j += 1

    return debts
