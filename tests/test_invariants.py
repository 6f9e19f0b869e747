"""Property tests over random operation sequences on a shared pool.

Laws checked after every step:
  Lock accounting: total_locked == sum of per-strategy locks
                   == sum of locked_amount over ACTIVE positions.
  Solvency:        total_locked <= pool balance.
  Limits:          each strategy's lock stays within its limit.
  Conservation:    reserve token supply never changes.
  Terminality:     an EXERCISED or EXPIRED position never changes again.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from optionpool.core.result import Ok, unwrap
from optionpool.core.types import UtcDatetime, days
from optionpool.infra.config import OTM_CALL_110_ETH, OTM_PUT_90_ETH, STRIP_ETH, build_strategy
from optionpool.infra.memory_adapter import InMemoryPriceOracle
from optionpool.infra.operator import OperatorGuard
from optionpool.ledger.collateral import CollateralLedger
from optionpool.ledger.engine import ReserveBook
from optionpool.strategy.position import Position
from optionpool.strategy.strategy import Strategy

_TS = UtcDatetime(value=datetime(2025, 6, 15, 10, 0, 0, tzinfo=UTC))
_HOLDERS = ("alice", "bob")

_op = st.one_of(
    st.tuples(
        st.just("open"),
        st.integers(min_value=0, max_value=2),
        st.sampled_from(_HOLDERS),
        st.integers(min_value=7, max_value=45),
        st.decimals(min_value=Decimal("0.01"), max_value=20, places=2),
    ),
    st.tuples(st.just("exercise"), st.integers(min_value=0, max_value=2), st.integers(0, 15)),
    st.tuples(st.just("expire"), st.integers(min_value=0, max_value=2), st.integers(0, 15)),
    st.tuples(st.just("price"), st.integers(min_value=1000, max_value=9000)),
    st.tuples(st.just("advance"), st.integers(min_value=1, max_value=20)),
)


def _pool() -> tuple[ReserveBook, CollateralLedger, InMemoryPriceOracle, list[Strategy]]:
    book = ReserveBook()
    unwrap(book.mint("lp", Decimal(200_000)))
    for holder in _HOLDERS:
        unwrap(book.mint(holder, Decimal(100_000)))
    ledger = CollateralLedger(book)
    unwrap(ledger.provide("lp", Decimal(200_000), now=_TS))
    oracle = InMemoryPriceOracle()
    oracle.set_price("ETH", Decimal(3200))
    guard = OperatorGuard("operator")
    strategies = [
        unwrap(build_strategy(preset, ledger, oracle, guard, now=_TS))
        for preset in (OTM_CALL_110_ETH, OTM_PUT_90_ETH, STRIP_ETH)
    ]
    return book, ledger, oracle, strategies


def _check(
    book: ReserveBook,
    ledger: CollateralLedger,
    strategies: list[Strategy],
    supply: Decimal,
    terminal: dict[tuple[str, int], Position],
) -> None:
    by_strategy = sum((ledger.locked_by_strategy(s.strategy_id) for s in strategies), Decimal(0))
    by_position = sum(
        (p.locked_amount for s in strategies for p in s.active_positions()), Decimal(0),
    )
    assert ledger.total_locked() == by_strategy == by_position
    assert ledger.total_locked() <= ledger.total_balance()
    for s in strategies:
        assert ledger.locked_by_strategy(s.strategy_id) <= ledger.limit_of(s.strategy_id)
    assert book.total_supply() == supply
    for s in strategies:
        for p in s.positions():
            key = (s.strategy_id, p.position_id)
            if key in terminal:
                assert p == terminal[key]
            elif not p.is_active:
                terminal[key] = p


class TestPoolInvariants:
    @settings(max_examples=60)
    @given(st.lists(_op, max_size=40))
    def test_laws_hold_for_any_sequence(self, ops: list[tuple]) -> None:  # type: ignore[type-arg]
        book, ledger, oracle, strategies = _pool()
        supply = book.total_supply()
        terminal: dict[tuple[str, int], Position] = {}
        now = _TS
        for op in ops:
            match op:
                case ("open", idx, holder, period_days, notional):
                    strategies[idx].open(holder, days(period_days), notional, now=now)
                case ("exercise", idx, pid):
                    s = strategies[idx]
                    position = s.position(pid)
                    holder = position.value.holder if isinstance(position, Ok) else "alice"
                    s.exercise(pid, caller=holder, now=now)
                case ("expire", idx, pid):
                    strategies[idx].expire(pid, now=now)
                case ("price", spot):
                    oracle.set_price("ETH", Decimal(spot))
                case ("advance", n_days):
                    now = now.plus_seconds(days(n_days))
            _check(book, ledger, strategies, supply, terminal)

    @settings(max_examples=40)
    @given(
        st.lists(st.decimals(min_value=Decimal("0.1"), max_value=10, places=1), max_size=10),
        st.integers(min_value=1000, max_value=9000),
    )
    def test_expire_due_releases_everything(
        self, notionals: list[Decimal], final_spot: int,
    ) -> None:
        _, ledger, oracle, strategies = _pool()
        for i, notional in enumerate(notionals):
            strategies[i % 3].open(_HOLDERS[i % 2], days(7), notional, now=_TS)
        oracle.set_price("ETH", Decimal(final_spot))
        later = _TS.plus_seconds(days(7))
        for s in strategies:
            assert isinstance(s.expire_due(now=later), Ok)
            assert s.active_positions() == ()
        assert ledger.total_locked() == 0
