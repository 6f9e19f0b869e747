"""Collaborator protocol definitions: price oracle and reserve accounting.

Domain code depends on these abstractions. Adapters implement them.
Both return Ok[T] | Err[...]; a missing price or an unfunded transfer is a
visible value in the type system, never an invisible exception.

The oracle is trusted: no staleness or deviation check is made on a reading.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, final, runtime_checkable

from optionpool.core.errors import InvariantViolationError, MissingObservableError, TransferError
from optionpool.core.fixed_point import from_units
from optionpool.core.result import Err, Ok


@final
@dataclass(frozen=True, slots=True)
class PriceReading:
    """Latest spot for an asset. ``price`` is already scaled to whole units."""

    price: Decimal
    decimals: int

    def __post_init__(self) -> None:
        if not isinstance(self.price, Decimal) or not self.price.is_finite() or self.price <= 0:
            raise TypeError(f"PriceReading.price must be a finite Decimal > 0, got {self.price!r}")
        if self.decimals < 0:
            raise TypeError(f"PriceReading.decimals must be >= 0, got {self.decimals}")

    @staticmethod
    def from_raw(raw: int, decimals: int) -> PriceReading:
        """Feed answer in integer units: from_raw(320000000000, 8).price == 3200."""
        return PriceReading(price=from_units(raw, decimals), decimals=decimals)


@runtime_checkable
class PriceOracle(Protocol):
    """Latest-price feed keyed by asset id.

    Invariants:
      - latest_price() returns Err(MISSING_PRICE) for an unknown asset.
      - readings are not cached by callers; every open/exercise reads anew.
    """

    def latest_price(
        self, asset_id: str,
    ) -> Ok[PriceReading] | Err[MissingObservableError]: ...


@runtime_checkable
class ReserveAccounting(Protocol):
    """Abstract value movement for the reserve token backing the pool.

    debit() moves value from a payer into pool_account, credit() from
    pool_account to a payee. Each is atomic; an unfunded movement fails
    with TRANSFER_FAILED and changes nothing.
    """

    @property
    def pool_account(self) -> str: ...

    def debit(
        self, payer: str, amount: Decimal,
    ) -> Ok[None] | Err[TransferError | InvariantViolationError]: ...

    def credit(
        self, payee: str, amount: Decimal,
    ) -> Ok[None] | Err[TransferError | InvariantViolationError]: ...

    def balance_of(self, account: str) -> Decimal: ...
