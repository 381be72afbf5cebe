"""Ledger engine: pure balance, simplification and split computations."""

from splitly.ledger.balances import compute_balances
from splitly.ledger.money import (
    SETTLE_TOLERANCE,
    format_amount,
    from_minor_units,
    quantize,
    to_minor_units,
)
from splitly.ledger.simplifier import simplify_debts
from splitly.ledger.splits import calculate_splits

__all__ = [
    "SETTLE_TOLERANCE",
    "calculate_splits",
    "compute_balances",
    "format_amount",
    "from_minor_units",
    "quantize",
    "simplify_debts",
    "to_minor_units",
]
