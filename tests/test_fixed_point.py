"""Tests for optionpool.core.fixed_point — mul_div, rounding, unit conversion."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from optionpool.core.fixed_point import (
    UINT256_MAX,
    from_units,
    isqrt,
    mul_div,
    quantize,
    round_to_increment,
)
from optionpool.core.result import Err, Ok
from optionpool.core.types import days


class TestMulDiv:
    def test_premium_fixture(self) -> None:
        # 3.45 units * 80000 * isqrt(7d) / 1e6
        result = mul_div(Decimal("3.45"), Decimal(80000 * 777), Decimal(1_000_000), places=6)
        assert result == Ok(Decimal("214.452000"))

    def test_rounds_down_by_default(self) -> None:
        assert mul_div(Decimal(2), Decimal(1), Decimal(3), places=6) == Ok(Decimal("0.666666"))

    def test_explicit_rounding(self) -> None:
        result = mul_div(Decimal(2), Decimal(1), Decimal(3), places=6, rounding=ROUND_HALF_UP)
        assert result == Ok(Decimal("0.666667"))

    def test_zero_denominator(self) -> None:
        result = mul_div(Decimal(1), Decimal(1), Decimal(0))
        assert isinstance(result, Err)
        assert result.error.code == "ARITHMETIC_OVERFLOW"

    def test_product_beyond_uint256(self) -> None:
        result = mul_div(Decimal(2**200), Decimal(2**100), Decimal(1))
        assert isinstance(result, Err)
        assert result.error.operation == "mul_div"

    def test_product_at_uint256_edge(self) -> None:
        result = mul_div(Decimal(UINT256_MAX), Decimal(1), Decimal(10**18), places=18)
        assert isinstance(result, Ok)

    @given(
        st.decimals(min_value=0, max_value=10**6, places=6, allow_nan=False, allow_infinity=False),
        st.decimals(min_value=0, max_value=10**6, places=6, allow_nan=False, allow_infinity=False),
    )
    def test_never_rounds_up(self, a: Decimal, b: Decimal) -> None:
        result = mul_div(a, b, Decimal(7), places=6)
        assert isinstance(result, Ok)
        assert result.value * 7 <= a * b


class TestQuantize:
    def test_truncates(self) -> None:
        assert quantize(Decimal("1.2345679"), 6) == Decimal("1.234567")

    def test_pads(self) -> None:
        assert str(quantize(Decimal("15525"), 6)) == "15525.000000"


class TestRoundToIncrement:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("3520", "3500"),
            ("2880", "2900"),
            ("2560", "2600"),
            ("2550", "2600"),
            ("2549.99", "2500"),
            ("3200", "3200"),
        ],
    )
    def test_half_up(self, raw: str, expected: str) -> None:
        assert round_to_increment(Decimal(raw), Decimal(100)) == Decimal(expected)

    def test_rejects_non_positive_increment(self) -> None:
        with pytest.raises(ValueError):
            round_to_increment(Decimal(3200), Decimal(0))

    @given(st.decimals(min_value=100, max_value=100_000, places=2))
    def test_idempotent_and_on_grid(self, value: Decimal) -> None:
        once = round_to_increment(value, Decimal(100))
        assert round_to_increment(once, Decimal(100)) == once
        assert once % 100 == 0


class TestIsqrtAndUnits:
    def test_isqrt_periods(self) -> None:
        assert isqrt(days(7)) == 777
        assert isqrt(days(30)) == 1609

    def test_from_units(self) -> None:
        assert from_units(214_452_000, 6) == Decimal("214.452")
        assert from_units(320_000_000_000, 8) == Decimal(3200)
