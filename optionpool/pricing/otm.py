"""Out-of-the-money calculator: rounded OTM strikes and term-structure IV.

Strike rounding produces the canonical strike a front-end should pass to
Strategy.open(). The strategy uses whatever strike the caller supplies and
does not correct it; only an omitted strike is derived here.

The IV rate comes from a four-bucket term structure keyed by period, and
may additionally carry the same two-tier utilization markup as the
adaptive calculator.
"""

from __future__ import annotations

from decimal import Decimal, localcontext
from typing import final

from optionpool.core.errors import (
    ArithmeticOverflowError,
    AuthorizationError,
    FieldViolation,
    ValidationError,
)
from optionpool.core.fixed_point import round_to_increment
from optionpool.core.money import OPTIONPOOL_DECIMAL_CONTEXT
from optionpool.core.result import Err, Ok
from optionpool.infra.operator import OperatorGuard
from optionpool.pricing._validation import build_quote, check_request, update_params, val_err
from optionpool.pricing.adaptive import effective_iv_rate
from optionpool.pricing.protocols import UtilizationSource
from optionpool.pricing.types import (
    OtmParams,
    PeriodBounds,
    Quote,
    TermStructure,
    UtilizationParams,
)

_HUNDRED = Decimal(100)


def round_strike(spot: Decimal, strike_percentage: int, increment: Decimal) -> Decimal:
    """spot * percent / 100, rounded half-up onto the increment grid.

    round_strike(3200, 110, 100) == 3500   (raw 3520, remainder 20 < 50)
    round_strike(3200, 90, 100)  == 2900   (raw 2880, remainder 80 >= 50)
    """
    with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
        raw = spot * Decimal(strike_percentage) / _HUNDRED
    return round_to_increment(raw, increment)


@final
class OtmPriceCalculator:
    """Term-structure IV with OTM strike derivation."""

    def __init__(
        self,
        params: OtmParams,
        guard: OperatorGuard,
        utilization_source: UtilizationSource | None = None,
        strategy_id: str = "",
    ) -> None:
        self._params = params
        self._guard = guard
        self._source = utilization_source
        self._strategy_id = strategy_id

    @property
    def params(self) -> OtmParams:
        return self._params

    @property
    def period_bounds(self) -> PeriodBounds:
        return self._params.bounds

    def default_strike(self, spot: Decimal) -> Decimal:
        p = self._params
        return round_strike(spot, p.strike_percentage, p.strike_increment)

    def iv_rate_for(self, period: int) -> int:
        """Base IV rate of the term-structure bucket ``period`` falls in."""
        return self._params.term_structure.rate_for(period)

    def quote(
        self,
        period: int,
        notional: Decimal,
        spot: Decimal,  # noqa: ARG002
        *,
        collateral_per_unit: Decimal,
    ) -> Ok[Quote] | Err[ValidationError | ArithmeticOverflowError]:
        p = self._params
        match check_request(p.bounds, period, notional, "pricing.otm.quote"):
            case Err() as e:
                return e
            case Ok():
                pass
        base = self.iv_rate_for(period)
        if self._source is None:
            rate = Decimal(base)
        else:
            with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
                additional = notional * collateral_per_unit
            u = self._source.utilization(self._strategy_id, additional)
            rate = effective_iv_rate(base, u, p.utilization)
        return build_quote(period, notional, rate, collateral_per_unit, p.quote_decimals)

    # -- operator setters ------------------------------------------------

    def _apply(
        self, caller: str, action: str, **changes: object,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        match update_params(self._guard, self._params, caller, action, **changes):
            case Err() as e:
                return e
            case Ok(updated):
                self._params = updated
                return Ok(None)

    def set_term_structure(
        self, caller: str, term_structure: TermStructure,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        return self._apply(caller, "set_term_structure", term_structure=term_structure)

    def set_iv_rate(
        self, caller: str, bucket: int, iv_rate: int,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        """Replace one bucket's rate (setImpliedVolRate0..3)."""
        match self._guard.authorize(caller, "set_iv_rate"):
            case Err() as e:
                return e
            case Ok():
                pass
        ts = self._params.term_structure
        if not 0 <= bucket < len(ts.rates) or iv_rate < 0:
            return val_err(
                f"set_iv_rate: bucket {bucket} / rate {iv_rate} out of range",
                "INVALID_PARAMETER", "pricing.set_iv_rate",
                FieldViolation("bucket", "0..3", str(bucket)),
                FieldViolation("iv_rate", ">= 0", str(iv_rate)),
            )
        rates = list(ts.rates)
        rates[bucket] = iv_rate
        updated = TermStructure(rates=tuple(rates), boundaries_days=ts.boundaries_days)  # type: ignore[arg-type]
        return self._apply(caller, "set_iv_rate", term_structure=updated)

    def set_boundaries(
        self, caller: str, boundaries_days: tuple[int, int, int],
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        """Move the bucket boundaries (setPeriodLimits)."""
        match self._guard.authorize(caller, "set_boundaries"):
            case Err() as e:
                return e
            case Ok():
                pass
        try:
            updated = TermStructure(
                rates=self._params.term_structure.rates, boundaries_days=boundaries_days,
            )
        except TypeError as e:
            return val_err(
                f"set_boundaries: {e}", "INVALID_PARAMETER", "pricing.set_boundaries",
            )
        return self._apply(caller, "set_boundaries", term_structure=updated)

    def set_strike_increment(
        self, caller: str, strike_increment: Decimal,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        return self._apply(caller, "set_strike_increment", strike_increment=strike_increment)

    def set_strike_percentage(
        self, caller: str, strike_percentage: int,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        return self._apply(caller, "set_strike_percentage", strike_percentage=strike_percentage)

    def set_period_bounds(
        self, caller: str, bounds: PeriodBounds,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        return self._apply(caller, "set_period_bounds", bounds=bounds)

    def set_utilization(
        self, caller: str, utilization: UtilizationParams,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        return self._apply(caller, "set_utilization", utilization=utilization)
