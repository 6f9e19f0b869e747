"""Tests for optionpool.core.result — Ok/Err values, unwrap and collect."""

from __future__ import annotations

import dataclasses

import pytest
from hypothesis import given
from hypothesis import strategies as st

from optionpool.core.result import Err, Ok, Rejected, collect, unwrap


class TestValues:
    def test_ok_is_frozen(self) -> None:
        ok = Ok(42)
        with pytest.raises(dataclasses.FrozenInstanceError):
            ok.value = 99  # type: ignore[misc]

    def test_err_is_frozen(self) -> None:
        err = Err("fail")
        with pytest.raises(dataclasses.FrozenInstanceError):
            err.error = "other"  # type: ignore[misc]

    def test_match_dispatch(self) -> None:
        seen = []
        for result in (Ok(42), Err("fail")):
            match result:
                case Err(e):
                    seen.append(("err", e))
                case Ok(v):
                    seen.append(("ok", v))
        assert seen == [("ok", 42), ("err", "fail")]


def _half(x: int) -> Ok[int] | Err[str]:
    if x % 2:
        return Err(f"{x} is odd")
    return Ok(x // 2)


class TestCombinators:
    def test_map(self) -> None:
        assert Ok(5).map(lambda x: x * 2) == Ok(10)
        assert Err("fail").map(lambda x: x * 2) == Err("fail")

    def test_bind_chains(self) -> None:
        assert Ok(8).bind(_half).bind(_half) == Ok(2)

    def test_bind_short_circuits(self) -> None:
        assert Ok(6).bind(_half).bind(_half) == Err("3 is odd")


class TestUnwrap:
    def test_ok(self) -> None:
        assert unwrap(Ok("v")) == "v"

    def test_err_raises_with_error_attached(self) -> None:
        with pytest.raises(Rejected, match="unwrap on Err") as info:
            unwrap(Err("LIMIT_EXCEEDED"))
        assert info.value.error == "LIMIT_EXCEEDED"

    def test_rejected_is_runtime_error(self) -> None:
        with pytest.raises(RuntimeError):
            unwrap(Err("bad"))

    def test_non_result(self) -> None:
        with pytest.raises(TypeError):
            unwrap(42)  # type: ignore[arg-type]


class TestCollect:
    def test_all_ok(self) -> None:
        assert collect([Ok(1), Ok(2), Ok(3)]) == Ok((1, 2, 3))

    def test_empty(self) -> None:
        assert collect([]) == Ok(())

    def test_first_err_wins(self) -> None:
        assert collect([Ok(1), Err("a"), Err("b")]) == Err("a")

    def test_stops_pulling_after_err(self) -> None:
        ran: list[int] = []

        def step(x: int) -> Ok[int] | Err[str]:
            ran.append(x)
            return _half(x)

        assert collect(step(x) for x in (2, 4, 5, 6, 8)) == Err("5 is odd")
        assert ran == [2, 4, 5]

    @given(st.lists(st.integers()))
    def test_preserves_order(self, xs: list[int]) -> None:
        assert collect(Ok(x) for x in xs) == Ok(tuple(xs))
