"""Shared request validation and premium arithmetic for the calculators."""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from optionpool.core.errors import (
    ArithmeticOverflowError,
    AuthorizationError,
    FieldViolation,
    ValidationError,
)
from optionpool.core.fixed_point import isqrt, mul_div
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime
from optionpool.infra.operator import OperatorGuard
from optionpool.pricing.types import IV_RATE_PRECISION, PeriodBounds, Quote

logger = logging.getLogger(__name__)


def val_err(
    message: str, code: str, source: str, *fields: FieldViolation,
) -> Err[ValidationError]:
    """Create Err[ValidationError] stamped with the current time."""
    return Err(ValidationError(
        message=message, code=code,
        timestamp=UtcDatetime.now(), source=source, fields=tuple(fields),
    ))


def check_request(
    bounds: PeriodBounds, period: int, notional: Decimal, source: str,
) -> Ok[None] | Err[ValidationError]:
    """Reject out-of-range periods and non-positive notionals."""
    if period < bounds.min_period:
        return val_err(
            f"The period is too short: {period}s < {bounds.min_period}s",
            "PERIOD_OUT_OF_RANGE", source,
            FieldViolation("period", f">= {bounds.min_period}", str(period)),
        )
    if period > bounds.max_period:
        return val_err(
            f"The period is too long: {period}s > {bounds.max_period}s",
            "PERIOD_OUT_OF_RANGE", source,
            FieldViolation("period", f"<= {bounds.max_period}", str(period)),
        )
    if not notional.is_finite() or notional <= 0:
        return val_err(
            f"Notional amount must be > 0, got {notional}",
            "ZERO_NOTIONAL", source,
            FieldViolation("notional", "> 0", str(notional)),
        )
    return Ok(None)


def build_quote(
    period: int,
    notional: Decimal,
    iv_rate: Decimal,
    collateral_per_unit: Decimal,
    quote_decimals: int,
) -> Ok[Quote] | Err[ArithmeticOverflowError]:
    """premium = notional * iv_rate * isqrt(period) / 1e6, both legs rounded down."""
    match mul_div(
        notional, iv_rate * isqrt(period), IV_RATE_PRECISION,
        places=quote_decimals,
    ):
        case Err() as e:
            return e
        case Ok(premium):
            pass
    match mul_div(notional, collateral_per_unit, Decimal(1), places=quote_decimals):
        case Err() as e:
            return e
        case Ok(collateral):
            pass
    return Ok(Quote(
        premium=premium,
        required_collateral=collateral,
        iv_rate=iv_rate,
        period=period,
    ))


def update_params[P](
    guard: OperatorGuard, params: P, caller: str, action: str, **changes: object,
) -> Ok[P] | Err[AuthorizationError | ValidationError]:
    """Authorize, then build a new parameter snapshot with ``changes`` applied."""
    match guard.authorize(caller, action):
        case Err() as e:
            return e
        case Ok():
            pass
    try:
        updated = replace(params, **changes)  # type: ignore[type-var]
    except TypeError as e:
        return val_err(f"{action}: {e}", "INVALID_PARAMETER", f"pricing.{action}")
    logger.info("%s by %s: %s", action, caller, changes)
    return Ok(updated)
