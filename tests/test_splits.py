"""
Tests for the split calculator.
"""

import pytest
from decimal import Decimal

from splitly.ledger import calculate_splits
from splitly.models.ledger import SplitInput, SplitType


def amounts(splits):
    return [(s.member_id, s.amount) for s in splits]


class TestEqualSplits:
    """Equal splits in minor units."""

    def test_even_amount(self):
        """An evenly divisible amount gives identical shares."""
        splits = calculate_splits(Decimal("90.00"), ["a", "b", "c"], SplitType.EQUAL)
        assert amounts(splits) == [
            ("a", Decimal("30.00")),
            ("b", Decimal("30.00")),
            ("c", Decimal("30.00")),
        ]

    def test_remainder_cents_go_to_first_members(self):
        """10.00 over three members: the first gets the extra cent."""
        splits = calculate_splits(Decimal("10.00"), ["a", "b", "c"], SplitType.EQUAL)
        assert amounts(splits) == [
            ("a", Decimal("3.34")),
            ("b", Decimal("3.33")),
            ("c", Decimal("3.33")),
        ]
        assert sum(s.amount for s in splits) == Decimal("10.00")

    def test_no_members(self):
        """Nobody to split with gives no splits."""
        assert calculate_splits(Decimal("10.00"), [], SplitType.EQUAL) == []

    def test_accepts_plain_string_kind(self):
        """The split kind can be given as its wire value."""
        splits = calculate_splits(Decimal("4.00"), ["a", "b"], "equal")
        assert len(splits) == 2


class TestPercentageSplits:
    """Percentage splits with largest-remainder rounding."""

    def test_simple_percentages(self):
        """Percentages that divide cleanly."""
        custom = [
            SplitInput(member_id="a", percentage=Decimal("50")),
            SplitInput(member_id="b", percentage=Decimal("25")),
            SplitInput(member_id="c", percentage=Decimal("25")),
        ]
        splits = calculate_splits(Decimal("80.00"), [], SplitType.PERCENTAGE, custom)
        assert amounts(splits) == [
            ("a", Decimal("40.00")),
            ("b", Decimal("20.00")),
            ("c", Decimal("20.00")),
        ]
        assert splits[0].percentage == Decimal("50")

    def test_rounding_leftover_is_distributed(self):
        """Thirds of 10.00 still add up to 10.00."""
        third = Decimal("33.3333333333")
        custom = [
            SplitInput(member_id="a", percentage=third),
            SplitInput(member_id="b", percentage=third),
            SplitInput(member_id="c", percentage=third),
        ]
        splits = calculate_splits(Decimal("10.00"), [], SplitType.PERCENTAGE, custom)
        assert sum(s.amount for s in splits) == Decimal("10.00")
        assert amounts(splits)[0] == ("a", Decimal("3.34"))

    def test_missing_custom_input(self):
        """A percentage split without percentages gives no splits."""
        assert calculate_splits(Decimal("10.00"), ["a"], SplitType.PERCENTAGE) == []


class TestExactSplits:
    """Exact splits pass custom amounts through."""

    def test_exact_amounts(self):
        """Amounts are quantized to cents."""
        custom = [
            SplitInput(member_id="a", amount=Decimal("7.5")),
            SplitInput(member_id="b", amount=Decimal("2.50")),
        ]
        splits = calculate_splits(Decimal("10.00"), [], SplitType.EXACT, custom)
        assert amounts(splits) == [("a", Decimal("7.50")), ("b", Decimal("2.50"))]

    def test_missing_amount_is_zero(self):
        """A custom row without an amount contributes nothing."""
        custom = [SplitInput(member_id="a")]
        splits = calculate_splits(Decimal("10.00"), [], SplitType.EXACT, custom)
        assert amounts(splits) == [("a", Decimal("0.00"))]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
