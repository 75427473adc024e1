"""
Tests for the money primitives in core.money.

Covers:
- Fee rate parsing and range checks
- Half-up rounding to whole minor units
- fee + net == gross for every split
- Budget plus fee for campaign checkout
"""

from decimal import Decimal

import pytest

from core.errors import ValidationError
from core.money import (
    apply_rate, ensure_positive, gross_with_fee, round_amount, split_fee, to_rate,
)


class TestToRate:
    """Fee rates are Decimals in [0, 1]."""

    def test_accepts_strings_floats_and_decimals(self):
        assert to_rate("0.1") == Decimal("0.1")
        assert to_rate(0.1) == Decimal("0.1")
        assert to_rate(Decimal("0.25")) == Decimal("0.25")
        assert to_rate(0) == Decimal("0")
        assert to_rate(1) == Decimal("1")

    @pytest.mark.parametrize("value", ["-0.01", "1.0001", 2, "abc", None, "NaN", "Infinity"])
    def test_rejects_out_of_range_or_garbage(self, value):
        with pytest.raises(ValidationError):
            to_rate(value)


class TestRounding:
    """Rounding is half away from zero."""

    def test_half_rounds_up(self):
        assert round_amount(Decimal("1.5")) == 2
        assert round_amount(Decimal("2.5")) == 3
        assert round_amount(Decimal("2.4999")) == 2

    def test_negative_half_rounds_away_from_zero(self):
        assert round_amount(Decimal("-1.5")) == -2

    def test_apply_rate(self):
        assert apply_rate(1_000_000, "0.1") == 100_000
        assert apply_rate(15, "0.1") == 2
        assert apply_rate(14, "0.1") == 1
        assert apply_rate(-15, "0.1") == -2


class TestSplitFee:
    """split_fee never loses or invents a minor unit."""

    @pytest.mark.parametrize("gross,rate", [
        (1_000_000, "0.1"),
        (15, "0.1"),
        (999, "0.033"),
        (1, "0.5"),
        (50_000, "0"),
        (50_000, "1"),
    ])
    def test_fee_plus_net_equals_gross(self, gross, rate):
        fee, net = split_fee(gross, rate)
        assert fee + net == gross

    def test_rate_boundaries(self):
        assert split_fee(50_000, "0") == (0, 50_000)
        assert split_fee(50_000, "1") == (50_000, 0)


class TestCheckoutAmount:

    def test_budget_plus_fee(self):
        assert gross_with_fee(1_000_000, "0.1") == 1_100_000
        assert gross_with_fee(1_000_000, "0") == 1_000_000
        assert gross_with_fee(1_000_000, "1") == 2_000_000


class TestEnsurePositive:

    def test_positive_int_passes(self):
        assert ensure_positive(10) == 10

    @pytest.mark.parametrize("value", [0, -1, 1.5, "10", True, None])
    def test_rejects_non_positive_or_non_int(self, value):
        with pytest.raises(ValidationError):
            ensure_positive(value)
