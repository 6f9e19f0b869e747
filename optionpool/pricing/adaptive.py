"""Two-tier adaptive calculator: IV rate marked up with strategy utilization.

Utilization u is the strategy's locked collateral over its limit, read from
the ledger at quote time and including the collateral the new position
would add. Below the threshold the base rate applies (tier one); above it
the rate grows linearly with the excess (tier two). Higher utilization
therefore always means an equal or higher premium for the same trade.
"""

from __future__ import annotations

from decimal import Decimal, localcontext
from typing import final

from optionpool.core.errors import ArithmeticOverflowError, AuthorizationError, ValidationError
from optionpool.core.money import OPTIONPOOL_DECIMAL_CONTEXT
from optionpool.core.result import Err, Ok
from optionpool.infra.operator import OperatorGuard
from optionpool.pricing._validation import build_quote, check_request, update_params
from optionpool.pricing.protocols import UtilizationSource
from optionpool.pricing.types import (
    UTILIZATION_RATE_PRECISION,
    AdaptiveParams,
    PeriodBounds,
    Quote,
    UtilizationParams,
)


def effective_iv_rate(base: int, utilization: Decimal, params: UtilizationParams) -> Decimal:
    """Apply the two-tier utilization markup to a base IV rate."""
    if params.utilization_rate == 0 or utilization <= params.threshold:
        return Decimal(base)
    with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
        markup = Decimal(params.utilization_rate) / UTILIZATION_RATE_PRECISION
        return Decimal(base) * (1 + markup * (utilization - params.threshold))


@final
class AdaptivePriceCalculator:
    """Fixed-IV pricing plus a utilization markup read from the ledger."""

    def __init__(
        self,
        params: AdaptiveParams,
        guard: OperatorGuard,
        utilization_source: UtilizationSource,
        strategy_id: str,
    ) -> None:
        self._params = params
        self._guard = guard
        self._source = utilization_source
        self._strategy_id = strategy_id

    @property
    def params(self) -> AdaptiveParams:
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
        match check_request(p.bounds, period, notional, "pricing.adaptive.quote"):
            case Err() as e:
                return e
            case Ok():
                pass
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            additional = notional * collateral_per_unit
        u = self._source.utilization(self._strategy_id, additional)
        rate = effective_iv_rate(p.iv_rate, u, p.utilization)
        return build_quote(period, notional, rate, collateral_per_unit, p.quote_decimals)

    def set_iv_rate(
        self, caller: str, iv_rate: int,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        match update_params(self._guard, self._params, caller, "set_iv_rate", iv_rate=iv_rate):
            case Err() as e:
                return e
            case Ok(updated):
                self._params = updated
                return Ok(None)

    def set_utilization(
        self, caller: str, utilization: UtilizationParams,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        match update_params(
            self._guard, self._params, caller, "set_utilization", utilization=utilization,
        ):
            case Err() as e:
                return e
            case Ok(updated):
                self._params = updated
                return Ok(None)
