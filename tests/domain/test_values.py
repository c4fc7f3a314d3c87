"""Tests for the Decimal money helpers."""

from decimal import Decimal

import pytest

from catering_kernel.domain.values import (
    finite_or,
    money_gte,
    non_negative,
    round_money,
    to_decimal,
)


class TestRoundMoney:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("10.005"), Decimal("10.01")),
            (Decimal("10.004"), Decimal("10.00")),
            (Decimal("-0.005"), Decimal("-0.01")),
            (Decimal("NaN"), Decimal("0.00")),
        ],
    )
    def test_half_up_to_cents(self, value, expected):
        assert round_money(value) == expected

    def test_keeps_integer_digits_beyond_context_precision(self):
        rounded = round_money(Decimal("1e30") + Decimal("0.125"))

        assert rounded == Decimal("1e30")
        assert rounded.as_tuple().exponent == -2

    def test_thirty_digit_amount_with_cents(self):
        amount = Decimal("123456789012345678901234567890.125")

        assert round_money(amount) == Decimal("123456789012345678901234567890.13")


class TestBoundaryConversion:
    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            to_decimal(True)

    def test_non_finite_falls_back(self):
        assert finite_or("Infinity", None) is None
        assert non_negative("-3") == Decimal("0")

    def test_money_gte_absorbs_noise(self):
        assert money_gte(Decimal("503.995"), Decimal("504.00"))
        assert not money_gte(Decimal("503.99"), Decimal("504.00"))
