"""Fixed-IV calculator: one operator-set rate for every period and size."""

from __future__ import annotations

from decimal import Decimal
from typing import final

from optionpool.core.errors import ArithmeticOverflowError, AuthorizationError, ValidationError
from optionpool.core.result import Err, Ok
from optionpool.infra.operator import OperatorGuard
from optionpool.pricing._validation import build_quote, check_request, update_params
from optionpool.pricing.types import FixedIVParams, PeriodBounds, Quote


@final
class FixedIVPriceCalculator:
    """premium = notional * iv_rate * isqrt(period) / 1e6; strike defaults to spot (ATM)."""

    def __init__(self, params: FixedIVParams, guard: OperatorGuard) -> None:
        self._params = params
        self._guard = guard

    @property
    def params(self) -> FixedIVParams:
        return self._params

    @property
    def period_bounds(self) -> PeriodBounds:
        return self._params.bounds

    def default_strike(self, spot: Decimal) -> Decimal:
        return spot

    def quote(
        self,
        period: int,
        notional: Decimal,
        spot: Decimal,  # noqa: ARG002
        *,
        collateral_per_unit: Decimal,
    ) -> Ok[Quote] | Err[ValidationError | ArithmeticOverflowError]:
        p = self._params
        match check_request(p.bounds, period, notional, "pricing.fixed_iv.quote"):
            case Err() as e:
                return e
            case Ok():
                pass
        return build_quote(
            period, notional, Decimal(p.iv_rate), collateral_per_unit, p.quote_decimals,
        )

    def set_iv_rate(
        self, caller: str, iv_rate: int,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        match update_params(self._guard, self._params, caller, "set_iv_rate", iv_rate=iv_rate):
            case Err() as e:
                return e
            case Ok(updated):
                self._params = updated
                return Ok(None)

    def set_period_bounds(
        self, caller: str, bounds: PeriodBounds,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        match update_params(self._guard, self._params, caller, "set_period_bounds", bounds=bounds):
            case Err() as e:
                return e
            case Ok(updated):
                self._params = updated
                return Ok(None)
