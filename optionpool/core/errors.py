"""Error value hierarchy: no pool operation raises for a rejection.

Every error is a frozen dataclass value that can be pattern-matched,
logged, and stored. Base class OptionPoolError, @final subclasses grouped
by the kind of failure:

  ValidationError         bad input, rejected before any state change
  CapacityError           strategy limit or pool reserve exhausted
  PositionStateError      position state / exercise window mismatch
  InvariantViolationError accounting defect (double release)
  ArithmeticOverflowError fixed-point range exceeded
  TransferError           reserve movement could not be made
  MissingObservableError  oracle has no price for the asset
  AuthorizationError      parameter change by a non-operator
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import final

from optionpool.core.types import UtcDatetime


@dataclass(frozen=True, slots=True)
class OptionPoolError:
    """Base error value. Not @final: has subclasses."""

    message: str
    code: str
    timestamp: UtcDatetime
    source: str  # "module.function" that produced this error

    def to_dict(self) -> dict[str, object]:
        return {
            "message": self.message,
            "code": self.code,
            "timestamp": self.timestamp.value.isoformat(),
            "source": self.source,
        }


@final
@dataclass(frozen=True, slots=True)
class FieldViolation:
    """Describes a single field validation failure."""

    path: str  # e.g. "open.period"
    constraint: str  # e.g. "must be >= 604800"
    actual_value: str


@final
@dataclass(frozen=True, slots=True)
class ValidationError(OptionPoolError):
    """One or more inputs failed validation."""

    fields: tuple[FieldViolation, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            **OptionPoolError.to_dict(self),
            "fields": [
                {"path": f.path, "constraint": f.constraint, "actual_value": f.actual_value}
                for f in self.fields
            ],
        }


@final
@dataclass(frozen=True, slots=True)
class CapacityError(OptionPoolError):
    """Lock or payout rejected for lack of strategy headroom or free reserve."""

    requested: str
    available: str

    def to_dict(self) -> dict[str, object]:
        return {
            **OptionPoolError.to_dict(self),
            "requested": self.requested,
            "available": self.available,
        }


@final
@dataclass(frozen=True, slots=True)
class PositionStateError(OptionPoolError):
    """Operation does not fit the position's state or exercise window."""

    position_id: int
    state: str

    def to_dict(self) -> dict[str, object]:
        return {
            **OptionPoolError.to_dict(self),
            "position_id": self.position_id,
            "state": self.state,
        }


@final
@dataclass(frozen=True, slots=True)
class InvariantViolationError(OptionPoolError):
    """An accounting invariant would have been broken. Always a caller defect."""

    law_name: str
    expected: str
    actual: str

    def to_dict(self) -> dict[str, object]:
        return {
            **OptionPoolError.to_dict(self),
            "law_name": self.law_name,
            "expected": self.expected,
            "actual": self.actual,
        }


@final
@dataclass(frozen=True, slots=True)
class ArithmeticOverflowError(OptionPoolError):
    """Fixed-point operation left the representable range."""

    operation: str

    def to_dict(self) -> dict[str, object]:
        return {**OptionPoolError.to_dict(self), "operation": self.operation}


@final
@dataclass(frozen=True, slots=True)
class TransferError(OptionPoolError):
    """Reserve token movement failed (insufficient balance)."""

    account: str
    amount: str

    def to_dict(self) -> dict[str, object]:
        return {**OptionPoolError.to_dict(self), "account": self.account, "amount": self.amount}


@final
@dataclass(frozen=True, slots=True)
class MissingObservableError(OptionPoolError):
    """Required market observable is not available."""

    observable: str
    as_of: str

    def to_dict(self) -> dict[str, object]:
        return {**OptionPoolError.to_dict(self), "observable": self.observable, "as_of": self.as_of}


@final
@dataclass(frozen=True, slots=True)
class AuthorizationError(OptionPoolError):
    """Caller lacks the operator capability for a parameter change."""

    caller: str

    def to_dict(self) -> dict[str, object]:
        return {**OptionPoolError.to_dict(self), "caller": self.caller}
