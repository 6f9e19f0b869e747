"""Pricing value types: calculator parameters, term structure, quotes.

All rates are integers on a 1e-6 scale: iv_rate=80000 prices one whole
unit of the underlying at 0.08 quote units per sqrt-second of period.
Parameter dataclasses are immutable snapshots; calculators swap a whole
snapshot when the operator changes a value, so a quote always sees one
consistent parameter set.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import final

from optionpool.core.types import days

IV_RATE_PRECISION = Decimal(1_000_000)
UTILIZATION_RATE_PRECISION = Decimal(100)


@final
@dataclass(frozen=True, slots=True)
class PeriodBounds:
    """Admissible contract duration, in seconds, inclusive at both ends."""

    min_period: int
    max_period: int

    def __post_init__(self) -> None:
        if self.min_period <= 0:
            raise TypeError(f"PeriodBounds.min_period must be > 0, got {self.min_period}")
        if self.max_period < self.min_period:
            raise TypeError(
                f"PeriodBounds.max_period ({self.max_period}) must be >= "
                f"min_period ({self.min_period})"
            )


@final
@dataclass(frozen=True, slots=True)
class TermStructure:
    """Four IV rates over four period buckets split by three day boundaries.

    period <= b0 -> r0; b0 < period <= b1 -> r1; b1 < period <= b2 -> r2;
    period > b2 -> r3. Boundaries are whole days, strictly increasing.
    """

    rates: tuple[int, int, int, int]
    boundaries_days: tuple[int, int, int]

    def __post_init__(self) -> None:
        if len(self.rates) != 4:
            raise TypeError(f"TermStructure requires 4 rates, got {len(self.rates)}")
        if len(self.boundaries_days) != 3:
            raise TypeError(
                f"TermStructure requires 3 boundaries, got {len(self.boundaries_days)}"
            )
        if any(r < 0 for r in self.rates):
            raise TypeError(f"TermStructure rates must be >= 0, got {self.rates}")
        b0, b1, b2 = self.boundaries_days
        if not (0 < b0 < b1 < b2):
            raise TypeError(
                f"TermStructure boundaries must be strictly increasing and > 0, "
                f"got {self.boundaries_days}"
            )

    def bucket_of(self, period: int) -> int:
        """Index 0..3 of the bucket a period (in seconds) falls into."""
        for i, boundary in enumerate(self.boundaries_days):
            if period <= days(boundary):
                return i
        return 3

    def rate_for(self, period: int) -> int:
        return self.rates[self.bucket_of(period)]


@final
@dataclass(frozen=True, slots=True)
class FixedIVParams:
    """Single operator-set IV rate."""

    iv_rate: int
    bounds: PeriodBounds
    quote_decimals: int = 6

    def __post_init__(self) -> None:
        if self.iv_rate < 0:
            raise TypeError(f"FixedIVParams.iv_rate must be >= 0, got {self.iv_rate}")


@final
@dataclass(frozen=True, slots=True)
class UtilizationParams:
    """Two-tier utilization markup.

    Up to ``threshold`` utilization the base rate applies unchanged; above
    it the rate grows linearly:
        iv * (1 + utilization_rate / 100 * (u - threshold))
    utilization_rate == 0 disables the markup.
    """

    utilization_rate: int = 0
    threshold: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if self.utilization_rate < 0:
            raise TypeError(
                f"UtilizationParams.utilization_rate must be >= 0, got {self.utilization_rate}"
            )
        if not (Decimal("0") <= self.threshold < Decimal("1")):
            raise TypeError(
                f"UtilizationParams.threshold must be in [0, 1), got {self.threshold}"
            )


@final
@dataclass(frozen=True, slots=True)
class AdaptiveParams:
    """Base IV rate plus utilization markup."""

    iv_rate: int
    bounds: PeriodBounds
    utilization: UtilizationParams = UtilizationParams()
    quote_decimals: int = 6

    def __post_init__(self) -> None:
        if self.iv_rate < 0:
            raise TypeError(f"AdaptiveParams.iv_rate must be >= 0, got {self.iv_rate}")


@final
@dataclass(frozen=True, slots=True)
class OtmParams:
    """Out-of-the-money strike derivation plus term-structure IV.

    strike_percentage 110 -> call strike 10% above spot; 90 -> put 10% below.
    strike_increment is the price grid strikes are rounded onto.
    """

    term_structure: TermStructure
    bounds: PeriodBounds
    strike_percentage: int = 100
    strike_increment: Decimal = Decimal("100")
    utilization: UtilizationParams = UtilizationParams()
    quote_decimals: int = 6

    def __post_init__(self) -> None:
        if self.strike_percentage <= 0:
            raise TypeError(
                f"OtmParams.strike_percentage must be > 0, got {self.strike_percentage}"
            )
        if self.strike_increment <= 0:
            raise TypeError(
                f"OtmParams.strike_increment must be > 0, got {self.strike_increment}"
            )


@final
@dataclass(frozen=True, slots=True)
class Quote:
    """Calculator output for one prospective position."""

    premium: Decimal
    required_collateral: Decimal
    iv_rate: Decimal  # effective rate after any utilization markup
    period: int
