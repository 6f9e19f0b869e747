"""CollateralLedger: the single reserve pool and its lock counters.

Invariants, held after every public call:
  - total_locked == sum(locked_by_strategy.values())
  - locked_by_strategy[s] <= limit_of(s)
  - total_locked <= total_balance

The ledger is the sole writer of the lock counters. Strategies never touch
them directly; they call lock/release/pay_out/collect_premium and, when a
later step of an operation fails, roll back to a checkpoint taken at the
start of that operation.

Value movement goes through the injected ReserveAccounting collaborator.
Counters and the audit trail are updated only after a movement succeeds.
While a movement is in flight, any call that mutates counters or moves
value returns REENTRANT_CALL.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import final

from optionpool.core.errors import (
    CapacityError,
    FieldViolation,
    InvariantViolationError,
    PositionStateError,
    TransferError,
    ValidationError,
)
from optionpool.core.money import OPTIONPOOL_DECIMAL_CONTEXT, NonNegativeDecimal
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime
from optionpool.infra.protocols import ReserveAccounting
from optionpool.infra.reentrancy import ReentrancyGuard
from optionpool.ledger.transactions import EntryKind, LedgerEntry

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)


@final
@dataclass(frozen=True, slots=True)
class LedgerCheckpoint:
    """Counter snapshot for rolling back a multi-step operation."""

    total_locked: Decimal
    locked: tuple[tuple[str, Decimal], ...]
    history_len: int


def _val_err(
    message: str, code: str, source: str, now: UtcDatetime, *fields: FieldViolation,
) -> Err[ValidationError]:
    return Err(ValidationError(
        message=message, code=code, timestamp=now,
        source=f"ledger.collateral.{source}", fields=tuple(fields),
    ))


def _capacity_err(
    message: str, code: str, source: str, now: UtcDatetime,
    requested: Decimal, available: Decimal,
) -> Err[CapacityError]:
    return Err(CapacityError(
        message=message, code=code, timestamp=now,
        source=f"ledger.collateral.{source}",
        requested=str(requested), available=str(available),
    ))


def _check_amount(
    amount: Decimal, source: str, now: UtcDatetime, *, allow_zero: bool,
) -> Ok[None] | Err[ValidationError]:
    if not isinstance(amount, Decimal) or not amount.is_finite():
        return _val_err(
            f"{source}: amount must be a finite Decimal, got {amount!r}",
            "INVALID_AMOUNT", source, now,
            FieldViolation(f"{source}.amount", "finite Decimal", repr(amount)),
        )
    if amount < 0 or (amount == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        return _val_err(
            f"{source}: amount must be {bound}, got {amount}",
            "INVALID_AMOUNT", source, now,
            FieldViolation(f"{source}.amount", bound, str(amount)),
        )
    return Ok(None)


@final
class CollateralLedger:
    """Pool-wide and per-strategy locked collateral over one reserve."""

    def __init__(self, reserve: ReserveAccounting) -> None:
        self._reserve = reserve
        self._total_locked: Decimal = _ZERO
        self._locked: dict[str, Decimal] = {}
        self._limits: dict[str, Decimal] = {}
        self._history: list[LedgerEntry] = []
        self._guard = ReentrancyGuard("ledger.collateral")

    # -- strategy registration -------------------------------------------

    def register_strategy(
        self, strategy_id: str, limit: Decimal, *, now: UtcDatetime,
    ) -> Ok[None] | Err[ValidationError | PositionStateError]:
        match self._guard.check("register_strategy"):
            case Err() as e:
                return e
            case Ok():
                pass
        if not strategy_id:
            return _val_err(
                "register_strategy: strategy_id must be non-empty",
                "INVALID_STRATEGY", "register_strategy", now,
            )
        if strategy_id in self._limits:
            return _val_err(
                f"Strategy already registered: {strategy_id}",
                "DUPLICATE_STRATEGY", "register_strategy", now,
            )
        match _check_amount(limit, "register_strategy", now, allow_zero=True):
            case Err() as e:
                return e
            case Ok():
                pass
        self._limits[strategy_id] = limit
        self._locked[strategy_id] = _ZERO
        logger.info("Registered strategy %s with limit %s", strategy_id, limit)
        return Ok(None)

    def set_limit(
        self, strategy_id: str, limit: Decimal, *, now: UtcDatetime,
    ) -> Ok[None] | Err[ValidationError | PositionStateError]:
        """Change a strategy's limit. Never below what it already holds locked."""
        match self._guard.check("set_limit"):
            case Err() as e:
                return e
            case Ok():
                pass
        match self._known(strategy_id, "set_limit", now):
            case Err() as e:
                return e
            case Ok():
                pass
        match _check_amount(limit, "set_limit", now, allow_zero=True):
            case Err() as e:
                return e
            case Ok():
                pass
        locked = self._locked[strategy_id]
        if limit < locked:
            return _val_err(
                f"set_limit: new limit {limit} is below locked {locked} for {strategy_id}",
                "INVALID_LIMIT", "set_limit", now,
                FieldViolation("set_limit.limit", f">= {locked}", str(limit)),
            )
        self._limits[strategy_id] = limit
        logger.info("Limit of %s set to %s", strategy_id, limit)
        return Ok(None)

    def _known(
        self, strategy_id: str, source: str, now: UtcDatetime,
    ) -> Ok[None] | Err[ValidationError]:
        if strategy_id in self._limits:
            return Ok(None)
        return _val_err(
            f"Unknown strategy: {strategy_id}", "UNKNOWN_STRATEGY", source, now,
            FieldViolation(f"{source}.strategy_id", "registered", strategy_id),
        )

    # -- queries ---------------------------------------------------------

    def total_balance(self) -> Decimal:
        return self._reserve.balance_of(self._reserve.pool_account)

    def total_locked(self) -> Decimal:
        return self._total_locked

    def locked_by_strategy(self, strategy_id: str) -> Decimal:
        return self._locked.get(strategy_id, _ZERO)

    def limit_of(self, strategy_id: str) -> Decimal:
        return self._limits.get(strategy_id, _ZERO)

    def free_balance(self) -> Decimal:
        """Reserve not backing any active position."""
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            return max(self.total_balance() - self._total_locked, _ZERO)

    def available_for(self, strategy_id: str) -> Decimal:
        """Collateral the strategy could still lock right now."""
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            headroom = self.limit_of(strategy_id) - self.locked_by_strategy(strategy_id)
            return max(min(headroom, self.free_balance()), _ZERO)

    def utilization(self, strategy_id: str, additional: Decimal = _ZERO) -> Decimal:
        """(locked + additional) / limit. A zero limit reads as fully used."""
        limit = self.limit_of(strategy_id)
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            used = self.locked_by_strategy(strategy_id) + additional
            if limit == 0:
                return Decimal(1) if used > 0 else _ZERO
            return used / limit

    def history(self) -> tuple[LedgerEntry, ...]:
        return tuple(self._history)

    # -- checkpoint / rollback -------------------------------------------

    def checkpoint(self) -> LedgerCheckpoint:
        return LedgerCheckpoint(
            total_locked=self._total_locked,
            locked=tuple(self._locked.items()),
            history_len=len(self._history),
        )

    def rollback(self, checkpoint: LedgerCheckpoint) -> None:
        """Restore counters and audit trail to ``checkpoint``.

        Only counter state is restored. Reserve movements are atomic at the
        collaborator, so a failed step has already moved nothing.
        """
        self._total_locked = checkpoint.total_locked
        self._locked = dict(checkpoint.locked)
        del self._history[checkpoint.history_len:]
        logger.warning("Ledger rolled back to total_locked=%s", checkpoint.total_locked)

    # -- lock / release --------------------------------------------------

    def lock(
        self, strategy_id: str, amount: Decimal, *, now: UtcDatetime,
    ) -> Ok[None] | Err[ValidationError | CapacityError | PositionStateError]:
        """Reserve ``amount`` for a strategy. No partial update on failure."""
        match self._guard.check("lock"):
            case Err() as e:
                return e
            case Ok():
                pass
        match self._known(strategy_id, "lock", now):
            case Err() as e:
                return e
            case Ok():
                pass
        match _check_amount(amount, "lock", now, allow_zero=True):
            case Err() as e:
                return e
            case Ok():
                pass
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            new_strategy_locked = self._locked[strategy_id] + amount
            limit = self._limits[strategy_id]
            if new_strategy_locked > limit:
                headroom = limit - self._locked[strategy_id]
                logger.warning(
                    "Lock of %s for %s exceeds limit %s (headroom %s)",
                    amount, strategy_id, limit, headroom,
                )
                return _capacity_err(
                    f"Strategy {strategy_id} limit exceeded: "
                    f"{new_strategy_locked} > {limit}",
                    "LIMIT_EXCEEDED", "lock", now, amount, headroom,
                )
            new_total = self._total_locked + amount
            balance = self.total_balance()
            if new_total > balance:
                free = balance - self._total_locked
                logger.warning(
                    "Lock of %s for %s exceeds free reserve %s", amount, strategy_id, free,
                )
                return _capacity_err(
                    f"Insufficient reserve: locked {new_total} > balance {balance}",
                    "INSUFFICIENT_RESERVE", "lock", now, amount, free,
                )
        self._locked[strategy_id] = new_strategy_locked
        self._total_locked = new_total
        self._record(EntryKind.LOCK, strategy_id, amount, now)
        return Ok(None)

    def release(
        self, strategy_id: str, amount: Decimal, *, now: UtcDatetime,
    ) -> Ok[None] | Err[ValidationError | InvariantViolationError | PositionStateError]:
        """Return ``amount`` to the free pool. Underflow means a double release."""
        match self._guard.check("release"):
            case Err() as e:
                return e
            case Ok():
                pass
        match self._known(strategy_id, "release", now):
            case Err() as e:
                return e
            case Ok():
                pass
        match _check_amount(amount, "release", now, allow_zero=True):
            case Err() as e:
                return e
            case Ok():
                pass
        held = self._locked[strategy_id]
        if amount > held or amount > self._total_locked:
            logger.error(
                "Release of %s for %s would underflow (strategy %s, total %s)",
                amount, strategy_id, held, self._total_locked,
            )
            return Err(InvariantViolationError(
                message=f"Release of {amount} exceeds locked {held} for {strategy_id}",
                code="INVARIANT_VIOLATION",
                timestamp=now,
                source="ledger.collateral.release",
                law_name="no-double-release",
                expected=f"<= {held}",
                actual=str(amount),
            ))
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            self._locked[strategy_id] = held - amount
            self._total_locked -= amount
        self._record(EntryKind.RELEASE, strategy_id, amount, now)
        return Ok(None)

    # -- value movement --------------------------------------------------

    def pay_out(
        self, holder: str, amount: Decimal, *, now: UtcDatetime,
    ) -> Ok[None] | Err[
        ValidationError | CapacityError | TransferError
        | InvariantViolationError | PositionStateError
    ]:
        """Pay ``amount`` from free reserve to holder.

        Free reserve excludes everything still locked, so the lock backing
        a position must be released before its payout.
        """
        match _check_amount(amount, "pay_out", now, allow_zero=True):
            case Err() as e:
                return e
            case Ok():
                pass
        if amount == 0:
            return Ok(None)
        free = self.free_balance()
        if amount > free:
            logger.warning("Payout of %s to %s exceeds free reserve %s", amount, holder, free)
            return _capacity_err(
                f"Insufficient free reserve for payout: {amount} > {free}",
                "INSUFFICIENT_RESERVE", "pay_out", now, amount, free,
            )
        return self._move(EntryKind.PAYOUT, holder, amount, now)

    def collect_premium(
        self, payer: str, amount: Decimal, *, now: UtcDatetime,
    ) -> Ok[None] | Err[
        ValidationError | TransferError | InvariantViolationError | PositionStateError
    ]:
        """Debit the buyer's premium into the pool."""
        match _check_amount(amount, "collect_premium", now, allow_zero=True):
            case Err() as e:
                return e
            case Ok():
                pass
        if amount == 0:
            return Ok(None)
        return self._move(EntryKind.PREMIUM, payer, amount, now)

    def provide(
        self, provider: str, amount: Decimal, *, now: UtcDatetime,
    ) -> Ok[None] | Err[
        ValidationError | TransferError | InvariantViolationError | PositionStateError
    ]:
        """Deposit reserve into the pool."""
        match _check_amount(amount, "provide", now, allow_zero=False):
            case Err() as e:
                return e
            case Ok():
                pass
        match self._move(EntryKind.PROVIDE, provider, amount, now):
            case Err() as e:
                return e
            case Ok():
                logger.info("%s provided %s; balance %s", provider, amount, self.total_balance())
                return Ok(None)

    def withdraw(
        self, receiver: str, amount: Decimal, *, now: UtcDatetime,
    ) -> Ok[None] | Err[
        ValidationError | CapacityError | TransferError
        | InvariantViolationError | PositionStateError
    ]:
        """Withdraw free reserve. Locked collateral can never be withdrawn."""
        match _check_amount(amount, "withdraw", now, allow_zero=False):
            case Err() as e:
                return e
            case Ok():
                pass
        free = self.free_balance()
        if amount > free:
            logger.warning("Withdrawal of %s by %s exceeds free reserve %s", amount, receiver, free)
            return _capacity_err(
                f"Withdrawal would leave locked collateral unbacked: {amount} > {free}",
                "INSUFFICIENT_RESERVE", "withdraw", now, amount, free,
            )
        match self._move(EntryKind.WITHDRAW, receiver, amount, now):
            case Err() as e:
                return e
            case Ok():
                logger.info("%s withdrew %s; balance %s", receiver, amount, self.total_balance())
                return Ok(None)

    def _move(
        self, kind: EntryKind, account: str, amount: Decimal, now: UtcDatetime,
    ) -> Ok[None] | Err[TransferError | InvariantViolationError | PositionStateError]:
        match self._guard.enter(kind.value.lower()):
            case Err() as e:
                return e
            case Ok():
                pass
        try:
            if kind in (EntryKind.PREMIUM, EntryKind.PROVIDE):
                result = self._reserve.debit(account, amount)
            else:
                result = self._reserve.credit(account, amount)
            match result:
                case Err() as e:
                    return e
                case Ok():
                    self._record(kind, account, amount, now)
                    return Ok(None)
        finally:
            self._guard.exit()

    def _record(self, kind: EntryKind, account: str, amount: Decimal, now: UtcDatetime) -> None:
        self._history.append(LedgerEntry(
            kind=kind,
            account=account,
            amount=NonNegativeDecimal(value=amount),
            timestamp=now,
            total_locked_after=self._total_locked,
        ))
        logger.debug("%s %s %s (total locked %s)", kind.value, account, amount, self._total_locked)
