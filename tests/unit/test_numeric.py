"""
Tests for numeric coercion of untrusted input.
"""

from decimal import Decimal

import pytest

from bullion_ledger.errors import InvalidError
from bullion_ledger.numeric import pick_number, quantize, require_number, to_number


class TestToNumber:

    @pytest.mark.parametrize("raw, expected", [
        ("12.5", Decimal("12.5000")),
        (7, Decimal("7.0000")),
        (0.1, Decimal("0.1000")),
        (" 3 ", Decimal("3.0000")),
        (Decimal("-2.25"), Decimal("-2.2500")),
    ])
    def test_parses_finite_values(self, raw, expected):
        assert to_number(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "Infinity", float("inf"), True])
    def test_unusable_values_fall_back_to_zero(self, raw):
        assert to_number(raw) == Decimal("0")

    def test_fallback_can_be_none(self):
        assert to_number("not a number", None) is None

    def test_rounds_to_four_places(self):
        assert to_number("1.23456") == Decimal("1.2346")


class TestPickNumber:

    def test_first_finite_value_wins(self):
        assert pick_number(None, "x", "5", "6") == Decimal("5")

    def test_nothing_usable_gives_zero(self):
        assert pick_number(None, "nan") == Decimal("0")


class TestRequireNumber:

    def test_returns_value(self):
        assert require_number("10", "amount") == Decimal("10")

    def test_non_finite_raises_invalid(self):
        with pytest.raises(InvalidError, match="Invalid amount value"):
            require_number("inf", "amount")


def test_quantize_rounds_half_up():
    assert quantize(Decimal("0.00005")) == Decimal("0.0001")
