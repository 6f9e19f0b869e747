"""Position state machine, Position record, and StrategyConfig.

POSITION_TRANSITIONS defines the valid edges:
    ACTIVE -> EXERCISED
    ACTIVE -> EXPIRED
Both targets are terminal. A position is never deleted; a terminal record
stays queryable for audit and profit_of().
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import final

from optionpool.core.errors import PositionStateError
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime
from optionpool.strategy.payoff import PayoffWeights

# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


class PositionState(Enum):
    ACTIVE = "ACTIVE"
    EXERCISED = "EXERCISED"
    EXPIRED = "EXPIRED"


type TransitionTable = frozenset[tuple[PositionState, PositionState]]

POSITION_TRANSITIONS: TransitionTable = frozenset({
    (PositionState.ACTIVE, PositionState.EXERCISED),
    (PositionState.ACTIVE, PositionState.EXPIRED),
})


def check_transition(
    position_id: int,
    from_state: PositionState,
    to_state: PositionState,
    transitions: TransitionTable = POSITION_TRANSITIONS,
) -> Ok[None] | Err[PositionStateError]:
    """Validate a state transition against a transition table."""
    if (from_state, to_state) in transitions:
        return Ok(None)
    return Err(PositionStateError(
        message=(
            f"Position {position_id} is not active: "
            f"{from_state.value} -> {to_state.value}"
        ),
        code="NOT_ACTIVE",
        timestamp=UtcDatetime.now(),
        source="strategy.position.check_transition",
        position_id=position_id,
        state=from_state.value,
    ))


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@final
@dataclass(frozen=True, slots=True)
class Position:
    """One opened contract. locked_amount is fixed for the position's life."""

    position_id: int
    holder: str
    strategy_id: str
    strike: Decimal
    notional: Decimal
    locked_amount: Decimal
    premium_paid: Decimal
    opened_at: UtcDatetime
    expires_at: UtcDatetime
    state: PositionState = PositionState.ACTIVE

    def __post_init__(self) -> None:
        if self.locked_amount < 0:
            raise TypeError(f"Position.locked_amount must be >= 0, got {self.locked_amount}")
        if self.expires_at <= self.opened_at:
            raise TypeError("Position.expires_at must be after opened_at")

    @property
    def is_active(self) -> bool:
        return self.state is PositionState.ACTIVE

    def is_exercisable_at(self, now: UtcDatetime) -> bool:
        """Exercise window is [opened_at, expires_at)."""
        return self.is_active and now < self.expires_at

    def with_state(self, state: PositionState) -> Ok[Position] | Err[PositionStateError]:
        match check_transition(self.position_id, self.state, state):
            case Err() as e:
                return e
            case Ok():
                return Ok(replace(self, state=state))


@final
@dataclass(frozen=True, slots=True)
class StrategyConfig:
    """Static strategy parameters; period bounds live on the calculator.

    limit is the initial per-strategy collateral limit registered with the
    ledger; the operator may change it later through Strategy.set_limit.
    k is the overcollateralization multiplier in percent (100 = 1x).
    """

    strategy_id: str
    asset_id: str
    weights: PayoffWeights
    limit: Decimal
    underlying_decimals: int = 18
    quote_decimals: int = 6
    k: int = 100

    def __post_init__(self) -> None:
        if not self.strategy_id:
            raise TypeError("StrategyConfig.strategy_id must be non-empty")
        if not self.asset_id:
            raise TypeError("StrategyConfig.asset_id must be non-empty")
        if self.k <= 0:
            raise TypeError(f"StrategyConfig.k must be > 0, got {self.k}")
        if self.limit < 0:
            raise TypeError(f"StrategyConfig.limit must be >= 0, got {self.limit}")
        if self.underlying_decimals < 0 or self.quote_decimals < 0:
            raise TypeError("StrategyConfig decimals must be >= 0")
