"""Integration scenarios: deployed presets end to end on one funded pool.

Each scenario opens through a preset-built Strategy, moves the oracle, and
checks premium, strike, locked collateral and payout against hand-computed
figures. Conservation of the reserve token is checked after every step.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from optionpool.core.result import Err, Ok, unwrap
from optionpool.core.types import UtcDatetime, days
from optionpool.infra.config import (
    OTM_CALL_110_ETH,
    OTM_PUT_90_ETH,
    STRADDLE_ETH,
    STRIP_ETH,
    build_strategy,
)
from optionpool.infra.memory_adapter import InMemoryPriceOracle
from optionpool.infra.operator import OperatorGuard
from optionpool.ledger.collateral import CollateralLedger
from optionpool.ledger.engine import ReserveBook
from optionpool.strategy.position import PositionState
from optionpool.strategy.strategy import Strategy

_TS = UtcDatetime(value=datetime(2025, 6, 15, 10, 0, 0, tzinfo=UTC))
_SUPPLY = Decimal(1_100_000)  # 1,000,000 LP + 2 * 50,000 buyers


class TestOtmCallScenario:
    """ETH at 3200, 110% strike on a 100 grid, 3.45 ETH for 7 days."""

    def test_open_and_exercise(
        self,
        ledger: CollateralLedger,
        reserve: ReserveBook,
        oracle: InMemoryPriceOracle,
        guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(OTM_CALL_110_ETH, ledger, oracle, guard, now=_TS, k=200))

        # 3520 rounds onto the grid at 3500
        quote = unwrap(strat.calculate_premium(days(7), Decimal("3.45")))
        assert quote.strike == Decimal(3500)
        assert quote.premium == Decimal("214.452")
        assert quote.required_collateral == Decimal(22080)

        pos = unwrap(strat.open("alice", days(7), Decimal("3.45"), now=_TS))
        assert pos.locked_amount == Decimal(22080)
        assert ledger.total_locked() == Decimal(22080)
        assert reserve.total_supply() == _SUPPLY

        oracle.set_raw_price("ETH", 800000000000, 8)
        assert unwrap(strat.profit_of(pos.position_id)) == Decimal(15525)

        result = unwrap(strat.exercise(pos.position_id, caller="alice", now=_TS.plus_seconds(days(3))))
        assert result.paid == Decimal(15525)
        assert ledger.total_locked() == 0
        assert reserve.balance_of("alice") == (
            Decimal(50_000) - Decimal("214.452") + Decimal(15525)
        )
        assert ledger.total_balance() == (
            Decimal(1_000_000) + Decimal("214.452") - Decimal(15525)
        )
        assert reserve.total_supply() == _SUPPLY

    def test_default_k_clamps_payout_to_lock(
        self,
        ledger: CollateralLedger,
        reserve: ReserveBook,
        oracle: InMemoryPriceOracle,
        guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(OTM_CALL_110_ETH, ledger, oracle, guard, now=_TS))
        pos = unwrap(strat.open("alice", days(7), Decimal("3.45"), now=_TS))
        # k=100 locks spot * notional: 3200 * 3.45
        assert pos.locked_amount == Decimal(11040)

        oracle.set_raw_price("ETH", 800000000000, 8)
        assert unwrap(strat.profit_of(pos.position_id)) == Decimal(15525)

        # the payoff exceeds the lock, so the holder gets the lock and no more
        result = unwrap(strat.exercise(pos.position_id, caller="alice", now=_TS.plus_seconds(days(3))))
        assert result.payoff == Decimal(15525)
        assert result.paid == Decimal(11040)
        assert ledger.total_locked() == 0
        assert reserve.balance_of("alice") == (
            Decimal(50_000) - Decimal("214.452") + Decimal(11040)
        )
        assert reserve.total_supply() == _SUPPLY

    def test_k_doubles_collateral(
        self,
        ledger: CollateralLedger,
        oracle: InMemoryPriceOracle,
        guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(OTM_CALL_110_ETH, ledger, oracle, guard, now=_TS))
        first = unwrap(strat.open("alice", days(7), Decimal("3.45"), now=_TS))
        assert first.locked_amount == Decimal(11040)
        unwrap(strat.set_k("operator", 200))
        second = unwrap(strat.open("alice", days(7), Decimal("3.45"), now=_TS))
        assert second.locked_amount == Decimal(22080)
        assert second.premium_paid == first.premium_paid

    def test_longer_period_uses_long_rate(
        self,
        ledger: CollateralLedger,
        oracle: InMemoryPriceOracle,
        guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(OTM_CALL_110_ETH, ledger, oracle, guard, now=_TS))
        quote = unwrap(strat.calculate_premium(days(14), Decimal(1)))
        # isqrt(1209600) == 1099
        assert quote.iv_rate == Decimal(87_000)
        assert quote.premium == Decimal("95.613")


class TestOtmPutScenario:
    def test_open_and_exercise(
        self,
        ledger: CollateralLedger,
        reserve: ReserveBook,
        oracle: InMemoryPriceOracle,
        guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(OTM_PUT_90_ETH, ledger, oracle, guard, now=_TS))
        pos = unwrap(strat.open("bob", days(7), Decimal("3.45"), now=_TS))
        # 2880 rounds onto the grid at 2900; a put locks its strike
        assert pos.strike == Decimal(2900)
        assert pos.locked_amount == Decimal(10005)
        assert pos.premium_paid == Decimal("214.452")

        oracle.set_raw_price("ETH", 200000000000, 8)
        result = unwrap(strat.exercise(pos.position_id, caller="bob", now=_TS))
        assert result.paid == Decimal(3105)
        assert reserve.balance_of("bob") == Decimal(50_000) - Decimal("214.452") + Decimal(3105)
        assert reserve.total_supply() == _SUPPLY

    def test_out_of_the_money_expires(
        self,
        ledger: CollateralLedger,
        oracle: InMemoryPriceOracle,
        guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(OTM_PUT_90_ETH, ledger, oracle, guard, now=_TS))
        pos = unwrap(strat.open("bob", days(7), Decimal("3.45"), now=_TS))
        result = strat.exercise(pos.position_id, caller="bob", now=_TS)
        assert isinstance(result, Err)
        assert result.error.code == "NOTHING_TO_EXERCISE"
        expired = unwrap(strat.expire(pos.position_id, now=pos.expires_at))
        assert expired.state is PositionState.EXPIRED
        assert ledger.total_locked() == 0
        assert ledger.total_balance() == Decimal(1_000_000) + Decimal("214.452")


class TestStripScenario:
    """Strip = one call + two puts, ATM. Downside pays exactly double."""

    def _open(
        self,
        ledger: CollateralLedger,
        oracle: InMemoryPriceOracle,
        guard: OperatorGuard,
    ) -> tuple[Strategy, int]:
        oracle.set_price("ETH", Decimal(5000))
        strat = unwrap(build_strategy(STRIP_ETH, ledger, oracle, guard, now=_TS))
        pos = unwrap(strat.open("alice", days(7), Decimal(1), now=_TS))
        assert pos.strike == Decimal(5000)
        assert pos.locked_amount == Decimal(15000)
        assert pos.premium_paid == Decimal("380.73")
        return strat, pos.position_id

    def test_upside(
        self, ledger: CollateralLedger, oracle: InMemoryPriceOracle, guard: OperatorGuard,
    ) -> None:
        strat, pid = self._open(ledger, oracle, guard)
        oracle.set_price("ETH", Decimal(7000))
        assert unwrap(strat.exercise(pid, caller="alice", now=_TS)).paid == Decimal(2000)

    def test_downside_pays_double(
        self, ledger: CollateralLedger, oracle: InMemoryPriceOracle, guard: OperatorGuard,
    ) -> None:
        strat, pid = self._open(ledger, oracle, guard)
        oracle.set_price("ETH", Decimal(3000))
        assert unwrap(strat.exercise(pid, caller="alice", now=_TS)).paid == Decimal(4000)


class TestSharedPool:
    def test_strategies_share_reserve_but_not_limits(
        self,
        reserve: ReserveBook,
        oracle: InMemoryPriceOracle,
        guard: OperatorGuard,
    ) -> None:
        ledger = CollateralLedger(reserve)
        unwrap(ledger.provide("lp", Decimal(30_000), now=_TS))
        call = unwrap(build_strategy(OTM_CALL_110_ETH, ledger, oracle, guard, now=_TS))
        put = unwrap(build_strategy(OTM_PUT_90_ETH, ledger, oracle, guard, now=_TS))

        unwrap(call.open("alice", days(7), Decimal(5), now=_TS))  # locks 16000
        unwrap(put.open("bob", days(7), Decimal(4), now=_TS))  # locks 11600

        # 30000 + premiums - 27600 locked leaves under 3200 free
        result = call.open("alice", days(7), Decimal(1), now=_TS)
        assert isinstance(result, Err)
        assert result.error.code == "INSUFFICIENT_RESERVE"
        assert ledger.total_locked() == Decimal(27_600)
        assert ledger.total_locked() == (
            ledger.locked_by_strategy(call.strategy_id) + ledger.locked_by_strategy(put.strategy_id)
        )
        assert isinstance(ledger.withdraw("lp", ledger.free_balance(), now=_TS), Ok)
        assert ledger.total_locked() == ledger.total_balance()


class TestUtilizationMarkup:
    """Past half its limit a strategy's IV rate grows with its utilization."""

    def test_otm_call_below_threshold(
        self, ledger: CollateralLedger, oracle: InMemoryPriceOracle, guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(OTM_CALL_110_ETH, ledger, oracle, guard, now=_TS))
        # 15 * 3200 = 48000 of a 100000 limit; isqrt(30 days) == 1609
        quote = unwrap(strat.calculate_premium(days(30), Decimal(15)))
        assert quote.iv_rate == Decimal(87_000)
        assert quote.premium == Decimal("2099.745")

    def test_otm_call_above_threshold(
        self, ledger: CollateralLedger, oracle: InMemoryPriceOracle, guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(OTM_CALL_110_ETH, ledger, oracle, guard, now=_TS))
        # 20 * 3200 = 64000 of 100000: u = 0.64, rate * (1 + 0.64 - 0.5)
        quote = unwrap(strat.calculate_premium(days(30), Decimal(20)))
        assert quote.iv_rate == Decimal(99_180)
        assert quote.premium == Decimal("3191.6124")
        assert quote.premium > Decimal("2799.66")

        pos = unwrap(strat.open("alice", days(30), Decimal(20), now=_TS))
        assert pos.premium_paid == Decimal("3191.6124")

    def test_open_positions_raise_the_next_quote(
        self, ledger: CollateralLedger, oracle: InMemoryPriceOracle, guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(OTM_CALL_110_ETH, ledger, oracle, guard, now=_TS))
        before = unwrap(strat.calculate_premium(days(30), Decimal(1)))
        assert before.premium == Decimal("139.983")
        unwrap(strat.open("alice", days(30), Decimal(20), now=_TS))
        # (64000 + 3200) / 100000 = 0.672
        after = unwrap(strat.calculate_premium(days(30), Decimal(1)))
        assert after.iv_rate == Decimal(101_964)
        assert after.premium == Decimal("164.060076")

    def test_straddle_above_threshold(
        self, ledger: CollateralLedger, oracle: InMemoryPriceOracle, guard: OperatorGuard,
    ) -> None:
        strat = unwrap(build_strategy(STRADDLE_ETH, ledger, oracle, guard, now=_TS))
        # 10 * (3200 + 3200) = 64000 of 100000
        quote = unwrap(strat.calculate_premium(days(7), Decimal(10)))
        assert quote.required_collateral == Decimal(64_000)
        assert quote.iv_rate == Decimal(912_000)
        assert quote.premium == Decimal("7086.24")
