"""
demo_otm_call_trade.py -- A walkthrough of one OTM call on a funded option pool.

This file buys a 7-day, 110% out-of-the-money ETH call from the pool, moves
the oracle, exercises it, and then shows what happens to an unexercised put
at expiry. Every number printed can be checked by hand.

The pool is a single reserve of USDC. Liquidity providers deposit into it;
buyers pay premiums into it; exercised positions are paid out of it. Each
strategy (call, put, strip, ...) may lock part of that reserve as collateral
for its open positions, up to its own limit. Nothing is ever paid from
collateral that backs another strategy's position.

We will:
  1. Fund the pool and wire two strategies from the deployment presets
  2. Quote the call and see how strike, premium and collateral are derived
  3. Open the call and inspect the ledger counters
  4. Move ETH to 8000 and exercise
  5. Open a put, let it expire worthless, and sweep it

Run this:  .venv/bin/python demo_otm_call_trade.py
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal

from optionpool.core.fixed_point import isqrt
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime, days
from optionpool.infra.config import OTM_CALL_110_ETH, OTM_PUT_90_ETH, QUOTE_SYMBOL, build_strategy
from optionpool.infra.memory_adapter import InMemoryPriceOracle
from optionpool.infra.operator import OperatorGuard
from optionpool.ledger.collateral import CollateralLedger
from optionpool.ledger.engine import ReserveBook


def sep(title: str) -> None:
    """Print a section separator."""
    print(f"\n{'=' * 72}")
    print(f"  {title}")
    print(f"{'=' * 72}\n")


logging.basicConfig(level=logging.INFO, format="  [%(name)s] %(message)s")

NOW = UtcDatetime(value=datetime(2025, 6, 15, 10, 0, 0, tzinfo=UTC))
PERIOD = days(7)
NOTIONAL = Decimal("3.45")


# ============================================================================
#  STEP 1: FUND THE POOL AND WIRE THE STRATEGIES
# ============================================================================
#
# ReserveBook is the in-memory reserve token: balances keyed by account id.
# CollateralLedger sits on top of it and owns the lock counters:
#   total_locked, locked_by_strategy[s], limit_of(s)
#
# Strategies never touch those counters directly. They call lock, release,
# pay_out and collect_premium, and roll back to a ledger checkpoint if a
# later step of the same operation fails.

sep("STEP 1: Fund the pool")

reserve = ReserveBook()
for account, amount in (("lp", Decimal(1_000_000)), ("alice", Decimal(50_000))):
    match reserve.mint(account, amount):
        case Ok(_):
            pass
        case Err(e):
            raise RuntimeError(f"Failed to mint for {account}: {e}")

ledger = CollateralLedger(reserve)
match ledger.provide("lp", Decimal(1_000_000), now=NOW):
    case Ok(_):
        print(f"  Pool balance:      {ledger.total_balance()} {QUOTE_SYMBOL}")
    case Err(e):
        raise RuntimeError(f"Failed to fund the pool: {e}")

# The oracle answers in integer feed units: 320000000000 at 8 decimals = 3200.
oracle = InMemoryPriceOracle()
oracle.set_raw_price("ETH", 320000000000, 8)

# The operator is the only identity allowed to change k, limits, or IV rates.
guard = OperatorGuard("operator")

# k=200 locks twice the worst-case bound per unit.
match build_strategy(OTM_CALL_110_ETH, ledger, oracle, guard, now=NOW, k=200):
    case Ok(call):
        print(f"  Strategy:          {call.strategy_id} (limit {ledger.limit_of(call.strategy_id)})")
    case Err(e):
        raise RuntimeError(f"Failed to build call strategy: {e}")

match build_strategy(OTM_PUT_90_ETH, ledger, oracle, guard, now=NOW):
    case Ok(put):
        print(f"  Strategy:          {put.strategy_id} (limit {ledger.limit_of(put.strategy_id)})")
    case Err(e):
        raise RuntimeError(f"Failed to build put strategy: {e}")


# ============================================================================
#  STEP 2: QUOTE
# ============================================================================
#
# strike   = 3200 * 110% = 3520, rounded half-up onto the 100 grid -> 3500
# premium  = notional * iv_rate * isqrt(period) / 1e6
#          = 3.45 * 80000 * isqrt(604800) / 1e6
#          = 3.45 * 80000 * 777 / 1e6 = 214.452
# collat.  = k/100 * spot * notional = 2 * 3200 * 3.45 = 22080
#
# A period of exactly 7 days falls in the first term-structure bucket, so
# the short rate (80000) applies. Anything longer uses 87000.

sep("STEP 2: Quote the call")

match call.calculate_premium(PERIOD, NOTIONAL):
    case Ok(quote):
        print(f"  isqrt(period):     {isqrt(PERIOD)}")
        print(f"  IV rate:           {quote.iv_rate}")
        print(f"  Strike:            {quote.strike}")
        print(f"  Premium:           {quote.premium} {QUOTE_SYMBOL}")
        print(f"  Collateral:        {quote.required_collateral} {QUOTE_SYMBOL}")
        print(f"  Still openable:    {quote.available} ETH")
    case Err(e):
        raise RuntimeError(f"Quote failed: {e}")


# ============================================================================
#  STEP 3: OPEN
# ============================================================================

sep("STEP 3: Open the call")

match call.open("alice", PERIOD, NOTIONAL, now=NOW):
    case Ok(position):
        print(f"  Position id:       {position.position_id}")
        print(f"  State:             {position.state.value}")
        print(f"  Expires at:        {position.expires_at.value.isoformat()}")
    case Err(e):
        raise RuntimeError(f"Open failed: {e}")

print(f"  Total locked:      {ledger.total_locked()}")
print(f"  Free balance:      {ledger.free_balance()}")
print(f"  Alice balance:     {reserve.balance_of('alice')}")


# ============================================================================
#  STEP 4: EXERCISE
# ============================================================================
#
# payoff = (spot - strike) * notional = (8000 - 3500) * 3.45 = 15525
# paid   = min(payoff, locked) = 15525, since 22080 was locked.
#
# With k=100 only 11040 would have been locked and the payout clamped.

sep("STEP 4: ETH to 8000, exercise")

oracle.set_raw_price("ETH", 800000000000, 8)

match call.profit_of(position.position_id):
    case Ok(profit):
        print(f"  Profit at spot:    {profit}")
    case Err(e):
        raise RuntimeError(f"profit_of failed: {e}")

match call.exercise(position.position_id, caller="alice", now=NOW.plus_seconds(days(3))):
    case Ok(result):
        print(f"  Paid:              {result.paid} {QUOTE_SYMBOL}")
        print(f"  State:             {result.position.state.value}")
    case Err(e):
        raise RuntimeError(f"Exercise failed: {e}")

# A second exercise is rejected: EXERCISED is terminal.
match call.exercise(position.position_id, caller="alice", now=NOW):
    case Ok(_):
        raise RuntimeError("A position must not be exercised twice")
    case Err(e):
        print(f"  Second exercise:   {e.code}")


# ============================================================================
#  STEP 5: A PUT THAT EXPIRES
# ============================================================================
#
# strike = 3200 * 90% = 2880 -> 2900; a put locks its strike per unit.
# Spot never falls below 2900, so at expiry anyone may release the lock
# and the premium stays in the pool.

sep("STEP 5: Open a put and let it expire")

oracle.set_raw_price("ETH", 320000000000, 8)

match put.open("alice", PERIOD, NOTIONAL, now=NOW):
    case Ok(put_position):
        print(f"  Strike:            {put_position.strike}")
        print(f"  Locked:            {put_position.locked_amount}")
    case Err(e):
        raise RuntimeError(f"Open failed: {e}")

match put.expire_due(now=put_position.expires_at):
    case Ok(swept):
        print(f"  Swept:             {[p.position_id for p in swept]}")
    case Err(e):
        raise RuntimeError(f"Sweep failed: {e}")


# ============================================================================
#  SUMMARY
# ============================================================================

sep("SUMMARY")

print(f"  Pool balance:      {ledger.total_balance()} {QUOTE_SYMBOL}")
print(f"  Total locked:      {ledger.total_locked()}")
print(f"  Alice balance:     {reserve.balance_of('alice')}")
print(f"  Reserve supply:    {reserve.total_supply()} (unchanged since minting)")
print()
print("  Ledger history")
for entry in ledger.history():
    print(f"    {entry.kind.value:9s} {entry.account:18s} {entry.amount.value}")
print()
print("Done. Every movement above went through the ledger, and locked collateral")
print("never exceeded the pool balance.")
