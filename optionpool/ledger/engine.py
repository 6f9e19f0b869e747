"""In-memory reserve token book with conservation law enforcement.

Core invariant: total_supply() is unchanged by every execute(); only
mint() creates reserve.

ReserveBook is @final but NOT a dataclass: it holds mutable internal state.
It implements the ReserveAccounting protocol consumed by CollateralLedger.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal, localcontext
from typing import final

from optionpool.core.errors import InvariantViolationError, TransferError, ValidationError
from optionpool.core.money import OPTIONPOOL_DECIMAL_CONTEXT, PositiveDecimal
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime
from optionpool.ledger.transactions import Transfer

logger = logging.getLogger(__name__)

DEFAULT_POOL_ACCOUNT = "pool"


def _transfer_error(account: str, amount: Decimal, detail: str) -> Err[TransferError]:
    return Err(TransferError(
        message=detail,
        code="TRANSFER_FAILED",
        timestamp=UtcDatetime.now(),
        source="ledger.engine.ReserveBook.execute",
        account=account,
        amount=str(amount),
    ))


@final
class ReserveBook:
    """Balances of one reserve token, keyed by account id."""

    def __init__(self, pool_account: str = DEFAULT_POOL_ACCOUNT) -> None:
        self._pool_account = pool_account
        self._balances: dict[str, Decimal] = defaultdict(Decimal)
        self._transfers: list[Transfer] = []

    @property
    def pool_account(self) -> str:
        return self._pool_account

    def mint(self, account: str, amount: Decimal) -> Ok[None] | Err[ValidationError]:
        """Create reserve out of thin air. Fixture/funding use only."""
        match PositiveDecimal.parse(amount):
            case Err(msg):
                return Err(ValidationError(
                    message=f"mint: amount {msg}",
                    code="INVALID_AMOUNT",
                    timestamp=UtcDatetime.now(),
                    source="ledger.engine.ReserveBook.mint",
                    fields=(),
                ))
            case Ok(pd):
                with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
                    self._balances[account] += pd.value
                return Ok(None)

    def execute(
        self, transfer: Transfer,
    ) -> Ok[None] | Err[TransferError | InvariantViolationError]:
        """Apply one transfer atomically.

        1. Reject if the source cannot cover the amount
        2. Pre-compute total supply
        3. Move the amount, keeping the old balances
        4. Post-verify total supply unchanged, reverting on mismatch
        5. Record the transfer
        """
        src = transfer.source.value
        dst = transfer.destination.value
        qty = transfer.amount.value

        if self._balances[src] < qty:
            logger.warning(
                "Transfer of %s from %s rejected: balance %s", qty, src, self._balances[src],
            )
            return _transfer_error(
                src, qty, f"Insufficient balance in {src}: {self._balances[src]} < {qty}",
            )

        pre_sigma = self.total_supply()
        old_balances = {src: self._balances[src], dst: self._balances[dst]}
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            self._balances[src] -= qty
            self._balances[dst] += qty

        post_sigma = self.total_supply()
        if pre_sigma != post_sigma:
            for key, val in old_balances.items():
                self._balances[key] = val
            logger.error("Conservation violated by transfer %s -> %s", src, dst)
            return Err(InvariantViolationError(
                message="Conservation violated for reserve token",
                code="INVARIANT_VIOLATION",
                timestamp=transfer.timestamp,
                source="ledger.engine.ReserveBook.execute",
                law_name="reserve-conservation",
                expected=str(pre_sigma),
                actual=str(post_sigma),
            ))

        self._transfers.append(transfer)
        return Ok(None)

    def _move(
        self, source: str, destination: str, amount: Decimal,
    ) -> Ok[None] | Err[TransferError | InvariantViolationError]:
        match Transfer.create(source, destination, amount, UtcDatetime.now()):
            case Err(msg):
                return _transfer_error(source, amount, msg)
            case Ok(transfer):
                return self.execute(transfer)

    def debit(
        self, payer: str, amount: Decimal,
    ) -> Ok[None] | Err[TransferError | InvariantViolationError]:
        """Move ``amount`` from payer into the pool account."""
        return self._move(payer, self._pool_account, amount)

    def credit(
        self, payee: str, amount: Decimal,
    ) -> Ok[None] | Err[TransferError | InvariantViolationError]:
        """Move ``amount`` from the pool account to payee."""
        return self._move(self._pool_account, payee, amount)

    def balance_of(self, account: str) -> Decimal:
        return self._balances.get(account, Decimal(0))

    def total_supply(self) -> Decimal:
        """Sum of all balances across all accounts."""
        with localcontext(OPTIONPOOL_DECIMAL_CONTEXT):
            return sum(self._balances.values(), Decimal(0))

    def transfers(self) -> tuple[Transfer, ...]:
        return tuple(self._transfers)
