"""PriceCalculator protocol: the seam between a Strategy and its pricing model.

A Strategy holds exactly one calculator, selected at construction time.
Calculators are pure with respect to pool state: they may read the ledger
(utilization) but never write to it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable

from optionpool.core.errors import ArithmeticOverflowError, ValidationError
from optionpool.core.result import Err, Ok
from optionpool.pricing.types import PeriodBounds, Quote


@runtime_checkable
class UtilizationSource(Protocol):
    """Read-only view of a strategy's share of its collateral limit."""

    def utilization(self, strategy_id: str, additional: Decimal = Decimal(0)) -> Decimal: ...


@runtime_checkable
class PriceCalculator(Protocol):
    """Maps (period, notional, spot) to a premium and a collateral requirement.

    Invariants:
      - quote() rejects periods outside period_bounds (PERIOD_OUT_OF_RANGE)
        and non-positive notionals (ZERO_NOTIONAL) before any arithmetic.
      - quote() never mutates pool or strategy state.
      - parameters are read at call time, never cached across calls.
    """

    @property
    def period_bounds(self) -> PeriodBounds: ...

    def default_strike(self, spot: Decimal) -> Decimal: ...

    def quote(
        self,
        period: int,
        notional: Decimal,
        spot: Decimal,
        *,
        collateral_per_unit: Decimal,
    ) -> Ok[Quote] | Err[ValidationError | ArithmeticOverflowError]: ...
