"""Ledger value types: Transfer, EntryKind, LedgerEntry.

A Transfer is one reserve movement between two distinct accounts; the
ReserveBook applies it atomically. A LedgerEntry is one line of the
collateral ledger's append-only audit trail.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import final

from optionpool.core.money import NonEmptyStr, NonNegativeDecimal, PositiveDecimal
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime


class EntryKind(Enum):
    LOCK = "LOCK"
    RELEASE = "RELEASE"
    PAYOUT = "PAYOUT"
    PREMIUM = "PREMIUM"
    PROVIDE = "PROVIDE"
    WITHDRAW = "WITHDRAW"


@final
@dataclass(frozen=True, slots=True)
class Transfer:
    """Reserve movement. source != destination enforced by create()."""

    source: NonEmptyStr
    destination: NonEmptyStr
    amount: PositiveDecimal
    timestamp: UtcDatetime

    @staticmethod
    def create(
        source: str, destination: str, amount: Decimal, timestamp: UtcDatetime,
    ) -> Ok[Transfer] | Err[str]:
        if not source:
            return Err("Transfer: source must be non-empty")
        if not destination:
            return Err("Transfer: destination must be non-empty")
        if source == destination:
            return Err(f"Transfer: source and destination must differ, both are '{source}'")
        match PositiveDecimal.parse(amount):
            case Err(msg):
                return Err(f"Transfer: amount {msg}")
            case Ok(pd):
                return Ok(Transfer(
                    source=NonEmptyStr(value=source),
                    destination=NonEmptyStr(value=destination),
                    amount=pd,
                    timestamp=timestamp,
                ))


@final
@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """One audit line. ``account`` is the strategy id for LOCK/RELEASE and
    the counterparty for PAYOUT/PREMIUM/PROVIDE/WITHDRAW."""

    kind: EntryKind
    account: str
    amount: NonNegativeDecimal
    timestamp: UtcDatetime
    total_locked_after: Decimal
