"""optionpool.strategy — Payoff weights, positions, and the Strategy lifecycle."""

from optionpool.strategy.payoff import PAYOFF_TABLE as PAYOFF_TABLE
from optionpool.strategy.payoff import PayoffKind as PayoffKind
from optionpool.strategy.payoff import PayoffWeights as PayoffWeights
from optionpool.strategy.payoff import weights_for as weights_for
from optionpool.strategy.position import POSITION_TRANSITIONS as POSITION_TRANSITIONS
from optionpool.strategy.position import Position as Position
from optionpool.strategy.position import PositionState as PositionState
from optionpool.strategy.position import StrategyConfig as StrategyConfig
from optionpool.strategy.position import check_transition as check_transition
from optionpool.strategy.strategy import ExerciseResult as ExerciseResult
from optionpool.strategy.strategy import PremiumQuote as PremiumQuote
from optionpool.strategy.strategy import Strategy as Strategy
