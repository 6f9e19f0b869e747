"""Strategy: one payoff mixture, one calculator, and the position lifecycle.

Every strategy kind (call, put, straddle, strip, strap, OTM variants) is
this one class, parameterized by StrategyConfig.weights and the injected
PriceCalculator. Ledger state is only ever changed through the
CollateralLedger; a strategy owns nothing but its position records.

Each mutating entry point runs under a ReentrancyGuard and follows the same
order: validate, mutate ledger counters and position state, then move
value through the ledger. If the value movement fails, the position record
and ledger counters are rolled back to where the call started.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal, localcontext
from typing import final

from optionpool.core.errors import (
    ArithmeticOverflowError,
    AuthorizationError,
    CapacityError,
    FieldViolation,
    InvariantViolationError,
    MissingObservableError,
    PositionStateError,
    TransferError,
    ValidationError,
)
from optionpool.core.fixed_point import mul_div, quantize
from optionpool.core.money import OPTIONPOOL_DECIMAL_CONTEXT
from optionpool.core.result import Err, Ok, collect
from optionpool.core.types import UtcDatetime
from optionpool.infra.operator import OperatorGuard
from optionpool.infra.protocols import PriceOracle
from optionpool.infra.reentrancy import ReentrancyGuard
from optionpool.ledger.collateral import CollateralLedger
from optionpool.pricing import PriceCalculator, check_request
from optionpool.strategy.position import Position, PositionState, StrategyConfig

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)

type LifecycleError = (
    ValidationError | CapacityError | PositionStateError | MissingObservableError
    | ArithmeticOverflowError | TransferError | InvariantViolationError
)


@final
@dataclass(frozen=True, slots=True)
class ExerciseResult:
    """Outcome of a successful exercise. paid = min(payoff, locked_amount)."""

    position: Position
    payoff: Decimal
    paid: Decimal


@final
@dataclass(frozen=True, slots=True)
class PremiumQuote:
    """calculate_premium() output for front-ends sizing an order."""

    premium: Decimal
    available: Decimal  # notional still openable under the limit at current spot
    strike: Decimal
    required_collateral: Decimal
    iv_rate: Decimal


def _val_err(
    message: str, code: str, source: str, now: UtcDatetime, *fields: FieldViolation,
) -> Err[ValidationError]:
    return Err(ValidationError(
        message=message, code=code, timestamp=now,
        source=f"strategy.{source}", fields=tuple(fields),
    ))


def _state_err(
    message: str, code: str, source: str, now: UtcDatetime, position: Position,
) -> Err[PositionStateError]:
    return Err(PositionStateError(
        message=message, code=code, timestamp=now,
        source=f"strategy.{source}",
        position_id=position.position_id, state=position.state.value,
    ))


@final
class Strategy:
    """Position lifecycle over one payoff mixture and one calculator."""

    def __init__(
        self,
        config: StrategyConfig,
        calculator: PriceCalculator,
        ledger: CollateralLedger,
        oracle: PriceOracle,
        guard: OperatorGuard,
    ) -> None:
        self._config = config
        self._calculator = calculator
        self._ledger = ledger
        self._oracle = oracle
        self._guard = guard
        self._positions: dict[int, Position] = {}
        self._next_id = 0
        self._approvals: dict[str, set[str]] = {}
        self._reentrancy = ReentrancyGuard(f"strategy.{config.strategy_id}")

    @staticmethod
    def create(
        config: StrategyConfig,
        calculator: PriceCalculator,
        ledger: CollateralLedger,
        oracle: PriceOracle,
        guard: OperatorGuard,
        *,
        now: UtcDatetime,
    ) -> Ok[Strategy] | Err[ValidationError | PositionStateError]:
        """Register the strategy's limit with the ledger and build it."""
        match ledger.register_strategy(config.strategy_id, config.limit, now=now):
            case Err() as e:
                return e
            case Ok():
                pass
        return Ok(Strategy(config, calculator, ledger, oracle, guard))

    # -- accessors -------------------------------------------------------

    @property
    def strategy_id(self) -> str:
        return self._config.strategy_id

    @property
    def config(self) -> StrategyConfig:
        return self._config

    @property
    def calculator(self) -> PriceCalculator:
        return self._calculator

    @property
    def ledger(self) -> CollateralLedger:
        return self._ledger

    # -- helpers ---------------------------------------------------------

    def _spot(self) -> Ok[Decimal] | Err[MissingObservableError]:
        return self._oracle.latest_price(self._config.asset_id).map(lambda r: r.price)

    def _resolve_strike(
        self, strike: Decimal | None, spot: Decimal, source: str, now: UtcDatetime,
    ) -> Ok[Decimal] | Err[ValidationError]:
        """None or 0 selects the calculator's default strike; negative is rejected."""
        if strike is None or strike == 0:
            return Ok(self._calculator.default_strike(spot))
        if not strike.is_finite() or strike < 0:
            return _val_err(
                f"Strike must be >= 0, got {strike}", "INVALID_STRIKE", source, now,
                FieldViolation("strike", ">= 0", str(strike)),
            )
        return Ok(strike)

    def _lookup(
        self, position_id: int, source: str, now: UtcDatetime,
    ) -> Ok[Position] | Err[ValidationError]:
        position = self._positions.get(position_id)
        if position is not None:
            return Ok(position)
        return _val_err(
            f"Unknown position: {position_id}", "UNKNOWN_POSITION", source, now,
            FieldViolation("position_id", "exists", str(position_id)),
        )

    def _payoff(
        self, position: Position, spot: Decimal,
    ) -> Ok[Decimal] | Err[ArithmeticOverflowError]:
        per_unit = self._config.weights.intrinsic(spot, position.strike)
        return mul_div(
            per_unit, position.notional, Decimal(1), places=self._config.quote_decimals,
        )

    # -- open ------------------------------------------------------------

    def open(
        self,
        holder: str,
        period: int,
        notional: Decimal,
        strike: Decimal | None = None,
        *,
        now: UtcDatetime,
    ) -> Ok[Position] | Err[LifecycleError]:
        """Buy a position: quote, lock collateral, record, collect premium.

        Any failure leaves ledger counters, the position table and the next
        position id exactly as they were.
        """
        match self._reentrancy.enter("open"):
            case Err() as e:
                return e
            case Ok():
                pass
        try:
            return self._open(holder, period, notional, strike, now)
        finally:
            self._reentrancy.exit()

    def _open(
        self,
        holder: str,
        period: int,
        notional: Decimal,
        strike: Decimal | None,
        now: UtcDatetime,
    ) -> Ok[Position] | Err[LifecycleError]:
        if not holder:
            return _val_err(
                "Holder must be non-empty", "INVALID_HOLDER", "open", now,
                FieldViolation("holder", "non-empty", repr(holder)),
            )
        match check_request(self._calculator.period_bounds, period, notional, "strategy.open"):
            case Err() as e:
                return e
            case Ok():
                pass
        match self._spot():
            case Err() as e:
                return e
            case Ok(spot):
                pass
        match self._resolve_strike(strike, spot, "open", now):
            case Err() as e:
                return e
            case Ok(resolved_strike):
                pass

        cpu = self._config.weights.collateral_per_unit(spot, resolved_strike, self._config.k)
        match self._calculator.quote(period, notional, spot, collateral_per_unit=cpu):
            case Err() as e:
                return e
            case Ok(quote):
                pass

        checkpoint = self._ledger.checkpoint()
        match self._ledger.lock(self.strategy_id, quote.required_collateral, now=now):
            case Err() as e:
                return e
            case Ok():
                pass

        position = Position(
            position_id=self._next_id,
            holder=holder,
            strategy_id=self.strategy_id,
            strike=resolved_strike,
            notional=notional,
            locked_amount=quote.required_collateral,
            premium_paid=quote.premium,
            opened_at=now,
            expires_at=now.plus_seconds(period),
        )
        self._positions[position.position_id] = position
        self._next_id += 1

        match self._ledger.collect_premium(holder, quote.premium, now=now):
            case Err() as e:
                del self._positions[position.position_id]
                self._next_id -= 1
                self._ledger.rollback(checkpoint)
                logger.warning(
                    "Open by %s on %s rolled back: %s", holder, self.strategy_id, e.error.code,
                )
                return e
            case Ok():
                pass

        logger.info(
            "Opened position %d on %s: holder=%s strike=%s notional=%s premium=%s locked=%s",
            position.position_id, self.strategy_id, holder, resolved_strike,
            notional, quote.premium, quote.required_collateral,
        )
        return Ok(position)

    # -- exercise --------------------------------------------------------

    def approve_exerciser(self, holder: str, exerciser: str, *, approved: bool = True) -> None:
        """Let ``exerciser`` exercise any of ``holder``'s positions."""
        delegates = self._approvals.setdefault(holder, set())
        if approved:
            delegates.add(exerciser)
        else:
            delegates.discard(exerciser)

    def is_approved(self, holder: str, caller: str) -> bool:
        return caller == holder or caller in self._approvals.get(holder, set())

    def exercise(
        self, position_id: int, *, caller: str, now: UtcDatetime,
    ) -> Ok[ExerciseResult] | Err[LifecycleError]:
        """Release the lock, mark EXERCISED, then pay min(payoff, lock)."""
        match self._reentrancy.enter("exercise", position_id):
            case Err() as e:
                return e
            case Ok():
                pass
        try:
            return self._exercise(position_id, caller, now)
        finally:
            self._reentrancy.exit()

    def _exercise(
        self, position_id: int, caller: str, now: UtcDatetime,
    ) -> Ok[ExerciseResult] | Err[LifecycleError]:
        match self._lookup(position_id, "exercise", now):
            case Err() as e:
                return e
            case Ok(position):
                pass
        if not self.is_approved(position.holder, caller):
            return _state_err(
                f"{caller} may not exercise position {position_id}",
                "NOT_HOLDER", "exercise", now, position,
            )
        if not position.is_active:
            return _state_err(
                f"Position {position_id} is not active ({position.state.value})",
                "NOT_ACTIVE", "exercise", now, position,
            )
        if not position.is_exercisable_at(now):
            return _state_err(
                f"Position {position_id} expired at {position.expires_at.value.isoformat()}",
                "EXPIRED", "exercise", now, position,
            )
        match self._spot():
            case Err() as e:
                return e
            case Ok(spot):
                pass
        match self._payoff(position, spot):
            case Err() as e:
                return e
            case Ok(payoff):
                pass
        if payoff == 0:
            return _state_err(
                f"Position {position_id} has nothing to exercise at spot {spot}",
                "NOTHING_TO_EXERCISE", "exercise", now, position,
            )
        paid = min(payoff, position.locked_amount)
        if paid < payoff:
            logger.warning(
                "Payout for position %d clamped to lock: payoff %s > locked %s",
                position_id, payoff, position.locked_amount,
            )

        checkpoint = self._ledger.checkpoint()
        match self._ledger.release(self.strategy_id, position.locked_amount, now=now):
            case Err() as e:
                return e
            case Ok():
                pass
        match position.with_state(PositionState.EXERCISED):
            case Err() as e:
                self._ledger.rollback(checkpoint)
                return e
            case Ok(exercised):
                self._positions[position_id] = exercised

        match self._ledger.pay_out(position.holder, paid, now=now):
            case Err() as e:
                self._positions[position_id] = position
                self._ledger.rollback(checkpoint)
                logger.warning("Exercise of position %d rolled back: %s", position_id, e.error.code)
                return e
            case Ok():
                pass

        logger.info(
            "Exercised position %d on %s at spot %s: payoff=%s paid=%s",
            position_id, self.strategy_id, spot, payoff, paid,
        )
        return Ok(ExerciseResult(position=exercised, payoff=payoff, paid=paid))

    # -- expire ----------------------------------------------------------

    def expire(
        self, position_id: int, *, now: UtcDatetime,
    ) -> Ok[Position] | Err[ValidationError | PositionStateError | InvariantViolationError]:
        """Release an expired position's lock with no payout. Callable by anyone."""
        match self._reentrancy.enter("expire", position_id):
            case Err() as e:
                return e
            case Ok():
                pass
        try:
            return self._expire(position_id, now)
        finally:
            self._reentrancy.exit()

    def _expire(
        self, position_id: int, now: UtcDatetime,
    ) -> Ok[Position] | Err[ValidationError | PositionStateError | InvariantViolationError]:
        match self._lookup(position_id, "expire", now):
            case Err() as e:
                return e
            case Ok(position):
                pass
        match position.with_state(PositionState.EXPIRED):
            case Err() as e:
                return e
            case Ok(expired):
                pass
        if now < position.expires_at:
            return _state_err(
                f"Position {position_id} expires at {position.expires_at.value.isoformat()}",
                "NOT_YET_EXPIRED", "expire", now, position,
            )
        match self._ledger.release(self.strategy_id, position.locked_amount, now=now):
            case Err() as e:
                return e
            case Ok():
                pass
        self._positions[position_id] = expired
        logger.info(
            "Expired position %d on %s, released %s",
            position_id, self.strategy_id, position.locked_amount,
        )
        return Ok(expired)

    def expire_due(
        self, *, now: UtcDatetime,
    ) -> Ok[tuple[Position, ...]] | Err[
        ValidationError | PositionStateError | InvariantViolationError
    ]:
        """Expire every ACTIVE position whose window has closed, oldest first.

        Stops at the first failure; positions swept before it stay EXPIRED.
        """
        match self._reentrancy.enter("expire_due"):
            case Err() as e:
                return e
            case Ok():
                pass
        try:
            due = (p for p in self.active_positions() if now >= p.expires_at)
            match collect(self._expire(p.position_id, now) for p in due):
                case Err() as e:
                    return e
                case Ok(expired):
                    pass
            if expired:
                logger.info("Swept %d expired positions on %s", len(expired), self.strategy_id)
            return Ok(expired)
        finally:
            self._reentrancy.exit()

    # -- read-only -------------------------------------------------------

    def profit_of(
        self, position_id: int,
    ) -> Ok[Decimal] | Err[ValidationError | MissingObservableError | ArithmeticOverflowError]:
        """Uncapped payoff at the current spot. Never mutates state."""
        match self._lookup(position_id, "profit_of", UtcDatetime.now()):
            case Err() as e:
                return e
            case Ok(position):
                pass
        return self._spot().bind(lambda spot: self._payoff(position, spot))

    def calculate_premium(
        self,
        period: int,
        notional: Decimal,
        strike: Decimal | None = None,
    ) -> Ok[PremiumQuote] | Err[
        ValidationError | MissingObservableError | ArithmeticOverflowError
    ]:
        """Quote a prospective open and report how much notional still fits."""
        now = UtcDatetime.now()
        match self._spot():
            case Err() as e:
                return e
            case Ok(spot):
                pass
        match self._resolve_strike(strike, spot, "calculate_premium", now):
            case Err() as e:
                return e
            case Ok(resolved_strike):
                pass
        cpu = self._config.weights.collateral_per_unit(spot, resolved_strike, self._config.k)
        match self._calculator.quote(period, notional, spot, collateral_per_unit=cpu):
            case Err() as e:
                return e
            case Ok(quote):
                pass
        capacity = self._ledger.available_for(self.strategy_id)
        if cpu == 0:
            available = _ZERO
        else:
            with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
                available = quantize(capacity / cpu, self._config.underlying_decimals)
        return Ok(PremiumQuote(
            premium=quote.premium,
            available=available,
            strike=resolved_strike,
            required_collateral=quote.required_collateral,
            iv_rate=quote.iv_rate,
        ))

    def position(self, position_id: int) -> Ok[Position] | Err[ValidationError]:
        return self._lookup(position_id, "position", UtcDatetime.now())

    def positions(self) -> tuple[Position, ...]:
        return tuple(self._positions[i] for i in sorted(self._positions))

    def positions_of(self, holder: str) -> tuple[Position, ...]:
        return tuple(p for p in self.positions() if p.holder == holder)

    def active_positions(self) -> tuple[Position, ...]:
        return tuple(p for p in self.positions() if p.is_active)

    # -- operator setters ------------------------------------------------

    def set_k(self, caller: str, k: int) -> Ok[None] | Err[AuthorizationError | ValidationError]:
        """Change the overcollateralization multiplier for future opens."""
        match self._guard.authorize(caller, "set_k"):
            case Err() as e:
                return e
            case Ok():
                pass
        if k <= 0:
            return _val_err(
                f"set_k: k must be > 0, got {k}", "INVALID_PARAMETER", "set_k",
                UtcDatetime.now(), FieldViolation("k", "> 0", str(k)),
            )
        self._config = replace(self._config, k=k)
        logger.info("k of %s set to %d by %s", self.strategy_id, k, caller)
        return Ok(None)

    def set_limit(
        self, caller: str, limit: Decimal, *, now: UtcDatetime,
    ) -> Ok[None] | Err[AuthorizationError | ValidationError | PositionStateError]:
        match self._guard.authorize(caller, "set_limit"):
            case Err() as e:
                return e
            case Ok():
                pass
        match self._ledger.set_limit(self.strategy_id, limit, now=now):
            case Err() as e:
                return e
            case Ok():
                self._config = replace(self._config, limit=limit)
                return Ok(None)
