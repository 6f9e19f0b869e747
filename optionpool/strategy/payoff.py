"""Payoff weights: one call/put mixture per strategy kind.

  Call     (1, 0)
  Put      (0, 1)
  Straddle (1, 1)
  Strip    (1, 2)
  Strap    (2, 1)

intrinsic() is the per-unit payoff at a given spot. collateral_per_unit()
is the worst-case bound the pool locks per unit of notional: a put can
never pay more than its strike, and a call is covered for a move of one
full spot above the strike. The k multiplier (percent, 100 = 1x) scales
that bound.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, localcontext
from enum import Enum
from typing import final

from optionpool.core.money import OPTIONPOOL_DECIMAL_CONTEXT

_ZERO = Decimal(0)
_HUNDRED = Decimal(100)


class PayoffKind(Enum):
    CALL = "CALL"
    PUT = "PUT"
    STRADDLE = "STRADDLE"
    STRIP = "STRIP"
    STRAP = "STRAP"


@final
@dataclass(frozen=True, slots=True)
class PayoffWeights:
    call_weight: Decimal
    put_weight: Decimal

    def __post_init__(self) -> None:
        if self.call_weight < 0 or self.put_weight < 0:
            raise TypeError(
                f"PayoffWeights must be >= 0, got ({self.call_weight}, {self.put_weight})"
            )
        if self.call_weight == 0 and self.put_weight == 0:
            raise TypeError("PayoffWeights requires at least one non-zero leg")

    def intrinsic(self, spot: Decimal, strike: Decimal) -> Decimal:
        """cw * max(spot - strike, 0) + pw * max(strike - spot, 0)."""
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            return (
                self.call_weight * max(spot - strike, _ZERO)
                + self.put_weight * max(strike - spot, _ZERO)
            )

    def collateral_per_unit(self, spot: Decimal, strike: Decimal, k: int) -> Decimal:
        """k / 100 * (cw * spot + pw * strike)."""
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            return Decimal(k) / _HUNDRED * (self.call_weight * spot + self.put_weight * strike)


PAYOFF_TABLE: dict[PayoffKind, PayoffWeights] = {
    PayoffKind.CALL: PayoffWeights(Decimal(1), Decimal(0)),
    PayoffKind.PUT: PayoffWeights(Decimal(0), Decimal(1)),
    PayoffKind.STRADDLE: PayoffWeights(Decimal(1), Decimal(1)),
    PayoffKind.STRIP: PayoffWeights(Decimal(1), Decimal(2)),
    PayoffKind.STRAP: PayoffWeights(Decimal(2), Decimal(1)),
}


def weights_for(kind: PayoffKind) -> PayoffWeights:
    return PAYOFF_TABLE[kind]
