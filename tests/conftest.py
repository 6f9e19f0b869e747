"""Hypothesis profiles and pytest fixtures for the option pool.

Fixtures build a funded in-memory pool: a ReserveBook, the CollateralLedger
over it, an in-memory oracle, and the operator guard.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, settings

from optionpool.core.result import unwrap
from optionpool.core.types import UtcDatetime
from optionpool.infra.memory_adapter import InMemoryPriceOracle
from optionpool.infra.operator import OperatorGuard
from optionpool.ledger.collateral import CollateralLedger
from optionpool.ledger.engine import ReserveBook

# ---------------------------------------------------------------------------
# Hypothesis global settings
# ---------------------------------------------------------------------------

settings.register_profile(
    "ci",
    max_examples=200,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    deadline=None,
)
settings.register_profile(
    "dev",
    max_examples=50,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    deadline=None,
)
settings.load_profile("dev")

OPERATOR = "operator"
LP = "lp"
POOL_FUNDING = Decimal(1_000_000)
START = UtcDatetime(value=datetime(2025, 6, 15, 10, 0, 0, tzinfo=UTC))


# ===================================================================
# FIXTURES
# ===================================================================


@pytest.fixture
def guard() -> OperatorGuard:
    return OperatorGuard(OPERATOR)


@pytest.fixture
def oracle() -> InMemoryPriceOracle:
    o = InMemoryPriceOracle()
    o.set_raw_price("ETH", 320000000000, 8)
    o.set_raw_price("BTC", 6000000000000, 8)
    return o


@pytest.fixture
def reserve() -> ReserveBook:
    book = ReserveBook()
    unwrap(book.mint(LP, POOL_FUNDING))
    for buyer in ("alice", "bob"):
        unwrap(book.mint(buyer, Decimal(50_000)))
    return book


@pytest.fixture
def ledger(reserve: ReserveBook) -> CollateralLedger:
    """Ledger over a pool already funded with POOL_FUNDING by the LP."""
    led = CollateralLedger(reserve)
    unwrap(led.provide(LP, POOL_FUNDING, now=START))
    return led
