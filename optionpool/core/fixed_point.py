"""Fixed-point helpers shared by the calculators, strategies and ledger.

Amounts are Decimal values in whole token units (3.45 WETH, 214.452 USDC)
quantized to the token's decimals. Rounding policy:

  ROUND_DOWN     premium, collateral, payout (never credit more than owed)
  ROUND_HALF_UP  strike rounding to an increment

The representable range mirrors a uint256 token balance: any intermediate
product whose magnitude exceeds UINT256_MAX is reported as
ArithmeticOverflowError instead of silently losing digits.
"""

from __future__ import annotations

import math
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, DecimalException, localcontext

from optionpool.core.errors import ArithmeticOverflowError
from optionpool.core.money import OPTIONPOOL_DECIMAL_CONTEXT
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime

UINT256_MAX: int = 2**256 - 1
_RANGE_LIMIT = Decimal(UINT256_MAX)


def _overflow(operation: str, detail: str) -> Err[ArithmeticOverflowError]:
    return Err(ArithmeticOverflowError(
        message=detail,
        code="ARITHMETIC_OVERFLOW",
        timestamp=UtcDatetime.now(),
        source=f"core.fixed_point.{operation}",
        operation=operation,
    ))


def mul_div(
    a: Decimal,
    b: Decimal,
    denominator: Decimal,
    *,
    places: int = 0,
    rounding: str = ROUND_DOWN,
) -> Ok[Decimal] | Err[ArithmeticOverflowError]:
    """Compute a * b / denominator, quantized to ``places`` decimals.

    The product is formed exactly before the single division, so the only
    rounding step is the final quantize.
    """
    if denominator == 0:
        return _overflow("mul_div", f"mul_div: zero denominator ({a} * {b} / 0)")
    try:
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            product = a * b
            if abs(product) > _RANGE_LIMIT:
                return _overflow("mul_div", f"mul_div: product {a} * {b} exceeds uint256 range")
            quotient = product / denominator
            return Ok(quotient.quantize(Decimal(1).scaleb(-places), rounding=rounding))
    except DecimalException as e:
        return _overflow("mul_div", f"mul_div: {type(e).__name__} for {a} * {b} / {denominator}")


def quantize(value: Decimal, decimals: int, rounding: str = ROUND_DOWN) -> Decimal:
    """Truncate (by default) a Decimal amount to a token's decimals."""
    with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
        return value.quantize(Decimal(1).scaleb(-decimals), rounding=rounding)


def round_to_increment(value: Decimal, increment: Decimal) -> Decimal:
    """Round value to the nearest multiple of increment, halves rounding up.

    3520 / 100 -> 3500, 2880 / 100 -> 2900, 2550 / 100 -> 2600.
    """
    if increment <= 0:
        raise ValueError(f"round_to_increment requires increment > 0, got {increment}")
    with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
        steps = (value / increment).to_integral_value(rounding=ROUND_HALF_UP)
        return steps * increment


def isqrt(seconds: int) -> int:
    """Integer square root of a whole-second period."""
    return math.isqrt(seconds)


def from_units(units: int, decimals: int) -> Decimal:
    """Integer token units to a whole-token Decimal: 214452000 (6 dp) -> 214.452."""
    with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
        return Decimal(units).scaleb(-decimals)
