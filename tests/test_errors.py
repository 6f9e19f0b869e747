"""Tests for optionpool.core.errors — Error value hierarchy."""

from __future__ import annotations

import dataclasses
import json

import pytest

from optionpool.core.errors import (
    ArithmeticOverflowError,
    AuthorizationError,
    CapacityError,
    FieldViolation,
    InvariantViolationError,
    MissingObservableError,
    OptionPoolError,
    PositionStateError,
    TransferError,
    ValidationError,
)
from optionpool.core.types import UtcDatetime


def _ts() -> UtcDatetime:
    return UtcDatetime.now()


def _base() -> OptionPoolError:
    return OptionPoolError(message="base error", code="E001", timestamp=_ts(), source="test.fn")


class TestOptionPoolError:
    def test_is_frozen(self) -> None:
        err = _base()
        with pytest.raises(dataclasses.FrozenInstanceError):
            err.message = "changed"  # type: ignore[misc]

    def test_to_dict_keys(self) -> None:
        assert set(_base().to_dict()) == {"message", "code", "timestamp", "source"}

    def test_to_dict_json_serializable(self) -> None:
        json.dumps(_base().to_dict())


class TestSubclasses:
    def test_validation_error_fields(self) -> None:
        err = ValidationError(
            message="bad period", code="PERIOD_OUT_OF_RANGE", timestamp=_ts(),
            source="pricing.quote",
            fields=(FieldViolation("period", ">= 604800", "3600"),),
        )
        d = err.to_dict()
        assert d["fields"] == [
            {"path": "period", "constraint": ">= 604800", "actual_value": "3600"},
        ]
        assert isinstance(err, OptionPoolError)

    def test_capacity_error(self) -> None:
        err = CapacityError(
            message="limit", code="LIMIT_EXCEEDED", timestamp=_ts(), source="ledger.lock",
            requested="22080", available="10000",
        )
        d = err.to_dict()
        assert d["requested"] == "22080"
        assert d["available"] == "10000"

    def test_position_state_error(self) -> None:
        err = PositionStateError(
            message="not active", code="NOT_ACTIVE", timestamp=_ts(), source="strategy",
            position_id=3, state="EXPIRED",
        )
        assert err.to_dict()["position_id"] == 3
        json.dumps(err.to_dict())

    def test_remaining_subclasses_serialize(self) -> None:
        ts = _ts()
        errors: list[OptionPoolError] = [
            InvariantViolationError(
                message="m", code="INVARIANT_VIOLATION", timestamp=ts, source="s",
                law_name="no-double-release", expected="<= 1", actual="2",
            ),
            ArithmeticOverflowError(
                message="m", code="ARITHMETIC_OVERFLOW", timestamp=ts, source="s",
                operation="mul_div",
            ),
            TransferError(
                message="m", code="TRANSFER_FAILED", timestamp=ts, source="s",
                account="alice", amount="1",
            ),
            MissingObservableError(
                message="m", code="MISSING_PRICE", timestamp=ts, source="s",
                observable="ETH", as_of="now",
            ),
            AuthorizationError(
                message="m", code="UNAUTHORIZED", timestamp=ts, source="s", caller="mallory",
            ),
        ]
        for err in errors:
            d = err.to_dict()
            json.dumps(d)
            assert d["code"] == err.code
