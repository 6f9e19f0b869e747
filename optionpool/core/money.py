"""Decimal context and refined numeric/string types.

All pool arithmetic uses OPTIONPOOL_DECIMAL_CONTEXT: prec=100 so that a
uint256-sized product quantized to 18 places stays exact, ROUND_HALF_EVEN for
intermediate results, and traps for InvalidOperation/DivisionByZero/Overflow.
Final amounts are quantized explicitly by core.fixed_point.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN as _ROUND_HALF_EVEN
from decimal import (
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
)
from typing import final

from optionpool.core.result import Err, Ok

OPTIONPOOL_DECIMAL_CONTEXT = Context(
    prec=100,
    rounding=_ROUND_HALF_EVEN,
    Emin=-999999,
    Emax=999999,
    capitals=1,
    clamp=0,
    flags=[],
    traps=[InvalidOperation, DivisionByZero, Overflow],
)


def _amount_problem(raw: object, type_name: str, *, strict: bool) -> str | None:
    """Why ``raw`` is not a valid pool amount, or None when it is."""
    if not isinstance(raw, Decimal):
        return f"{type_name} requires Decimal, got {type(raw).__name__}"
    if not raw.is_finite():
        return f"{type_name} requires finite value, got {raw}"
    if raw < 0 or (strict and raw == 0):
        bound = "> 0" if strict else ">= 0"
        return f"{type_name} requires {bound}, got {raw}"
    return None


@final
@dataclass(frozen=True, slots=True)
class PositiveDecimal:
    """Amount that must move value: transfer sizes, mints, deposits."""

    value: Decimal

    def __post_init__(self) -> None:
        problem = _amount_problem(self.value, "PositiveDecimal", strict=True)
        if problem is not None:
            raise TypeError(problem)

    @staticmethod
    def parse(raw: Decimal) -> Ok[PositiveDecimal] | Err[str]:
        problem = _amount_problem(raw, "PositiveDecimal", strict=True)
        return Err(problem) if problem is not None else Ok(PositiveDecimal(value=raw))


@final
@dataclass(frozen=True, slots=True)
class NonNegativeDecimal:
    """Amount that may be zero: audit entries, locks, premiums."""

    value: Decimal

    def __post_init__(self) -> None:
        problem = _amount_problem(self.value, "NonNegativeDecimal", strict=False)
        if problem is not None:
            raise TypeError(problem)

    @staticmethod
    def parse(raw: Decimal) -> Ok[NonNegativeDecimal] | Err[str]:
        problem = _amount_problem(raw, "NonNegativeDecimal", strict=False)
        return Err(problem) if problem is not None else Ok(NonNegativeDecimal(value=raw))


@final
@dataclass(frozen=True, slots=True)
class NonEmptyStr:
    """Account or strategy identifier."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise TypeError("NonEmptyStr requires non-empty string")

    @staticmethod
    def parse(raw: str) -> Ok[NonEmptyStr] | Err[str]:
        return Ok(NonEmptyStr(value=raw)) if raw else Err("NonEmptyStr requires non-empty string")
