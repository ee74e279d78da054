"""Tests for decimal and time helpers."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from settleboard.shared.determinism import (
    ensure_utc,
    percentage,
    round_decimal,
    safe_divide,
    to_decimal,
    window_start,
)
from settleboard.shared.errors import ValidationError


class TestToDecimal:
    def test_converts_float_via_str(self):
        assert to_decimal(2.1) == Decimal("2.1")

    @pytest.mark.parametrize("value", [None, "abc", "NaN", "Infinity"])
    def test_rejects(self, value):
        with pytest.raises(ValidationError):
            to_decimal(value, "odds")


class TestRounding:
    def test_half_even(self):
        assert round_decimal(Decimal("2.125")) == Decimal("2.12")
        assert round_decimal(Decimal("2.135")) == Decimal("2.14")

    def test_percentage(self):
        assert percentage(2, 3) == Decimal("66.67")
        assert percentage(0, 0) == Decimal("0.00")

    def test_safe_divide_zero(self):
        assert safe_divide(Decimal("1"), Decimal("0")) == Decimal("0")

    @given(st.integers(min_value=0, max_value=10_000), st.integers(min_value=1, max_value=10_000))
    def test_percentage_bounded(self, part, extra):
        whole = part + extra
        result = percentage(part, whole)
        assert Decimal("0") <= result <= Decimal("100")


class TestTime:
    def test_naive_is_utc(self):
        assert ensure_utc(datetime(2026, 1, 1)).tzinfo is timezone.utc

    def test_window_start(self):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert window_start(7, now) == now - timedelta(days=7)
