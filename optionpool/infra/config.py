"""Asset definitions and deployment presets for the option pool.

Pure configuration data plus small factories that wire a calculator and a
Strategy onto a shared CollateralLedger. Feed decimals, IV rates, strike
grids and limits mirror the production deployment; amounts are whole
quote units (USDC).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import final

from optionpool.core.errors import PositionStateError, ValidationError
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime, days
from optionpool.infra.operator import OperatorGuard
from optionpool.infra.protocols import PriceOracle
from optionpool.ledger.collateral import CollateralLedger
from optionpool.pricing.adaptive import AdaptivePriceCalculator
from optionpool.pricing.fixed_iv import FixedIVPriceCalculator
from optionpool.pricing.otm import OtmPriceCalculator
from optionpool.pricing.types import (
    AdaptiveParams,
    FixedIVParams,
    OtmParams,
    PeriodBounds,
    TermStructure,
    UtilizationParams,
)
from optionpool.strategy.payoff import PayoffKind, weights_for
from optionpool.strategy.position import StrategyConfig
from optionpool.strategy.strategy import Strategy

# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------

QUOTE_SYMBOL: str = "USDC"
QUOTE_DECIMALS: int = 6
FEED_DECIMALS: int = 8

# Raw IV rates are stored on-chain against amounts in the underlying's
# smallest unit with an 18-decimal divisor. Rates here are per whole unit.
_RAW_IV_DIVISOR_DECIMALS: int = 18


@final
@dataclass(frozen=True, slots=True)
class AssetConfig:
    """Underlying asset: id used by the oracle, token decimals, feed decimals."""

    asset_id: str
    decimals: int
    feed_decimals: int = FEED_DECIMALS


ETH = AssetConfig(asset_id="ETH", decimals=18)
BTC = AssetConfig(asset_id="BTC", decimals=8)


def normalize_iv_rate(raw: int, underlying_decimals: int) -> int:
    """Convert a raw deployed IV rate to the per-whole-unit 1e-6 scale.

    normalize_iv_rate(80000, 18) == 80000
    normalize_iv_rate(8000 * 10**12, 8) == 800000
    """
    shift = _RAW_IV_DIVISOR_DECIMALS - underlying_decimals
    return raw // 10**shift


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

DEFAULT_BOUNDS = PeriodBounds(min_period=days(7), max_period=days(45))
DEFAULT_BOUNDARIES_DAYS: tuple[int, int, int] = (7, 14, 30)
DEFAULT_LIMIT = Decimal(100_000)
STRIP_LIMIT = Decimal(1_000_000)
# Markup starts once a strategy has locked half its limit and reaches +50%
# of the base rate when the limit is fully used.
DEFAULT_UTILIZATION = UtilizationParams(utilization_rate=100, threshold=Decimal("0.5"))


@final
@dataclass(frozen=True, slots=True)
class OtmPreset:
    """OTM call or put on one asset."""

    strategy_id: str
    asset: AssetConfig
    kind: PayoffKind
    iv_rate_short: int
    iv_rate_long: int
    strike_percentage: int
    strike_increment: Decimal
    limit: Decimal = DEFAULT_LIMIT
    bounds: PeriodBounds = DEFAULT_BOUNDS
    boundaries_days: tuple[int, int, int] = DEFAULT_BOUNDARIES_DAYS
    utilization: UtilizationParams = DEFAULT_UTILIZATION

    def term_structure(self) -> TermStructure:
        long = self.iv_rate_long
        return TermStructure(
            rates=(self.iv_rate_short, long, long, long),
            boundaries_days=self.boundaries_days,
        )


@final
@dataclass(frozen=True, slots=True)
class FixedIVPreset:
    """ATM strategy (strip, strap) with one IV rate."""

    strategy_id: str
    asset: AssetConfig
    kind: PayoffKind
    iv_rate: int
    limit: Decimal = STRIP_LIMIT
    bounds: PeriodBounds = DEFAULT_BOUNDS


@final
@dataclass(frozen=True, slots=True)
class AdaptivePreset:
    """ATM strategy whose IV rate is marked up with its own utilization."""

    strategy_id: str
    asset: AssetConfig
    kind: PayoffKind
    iv_rate: int
    limit: Decimal = DEFAULT_LIMIT
    bounds: PeriodBounds = DEFAULT_BOUNDS
    utilization: UtilizationParams = DEFAULT_UTILIZATION


type Preset = OtmPreset | FixedIVPreset | AdaptivePreset


OTM_CALL_110_ETH = OtmPreset(
    strategy_id="otm-call-110-eth", asset=ETH, kind=PayoffKind.CALL,
    iv_rate_short=80_000, iv_rate_long=87_000,
    strike_percentage=110, strike_increment=Decimal(100),
)
OTM_PUT_90_ETH = OtmPreset(
    strategy_id="otm-put-90-eth", asset=ETH, kind=PayoffKind.PUT,
    iv_rate_short=80_000, iv_rate_long=87_000,
    strike_percentage=90, strike_increment=Decimal(100),
)
OTM_CALL_110_BTC = OtmPreset(
    strategy_id="otm-call-110-btc", asset=BTC, kind=PayoffKind.CALL,
    iv_rate_short=normalize_iv_rate(8000 * 10**12, BTC.decimals),
    iv_rate_long=normalize_iv_rate(8000 * 10**12, BTC.decimals),
    strike_percentage=110, strike_increment=Decimal(1000),
)
OTM_PUT_90_BTC = OtmPreset(
    strategy_id="otm-put-90-btc", asset=BTC, kind=PayoffKind.PUT,
    iv_rate_short=normalize_iv_rate(8000 * 10**12, BTC.decimals),
    iv_rate_long=normalize_iv_rate(8000 * 10**12, BTC.decimals),
    strike_percentage=90, strike_increment=Decimal(1000),
)
STRIP_ETH = FixedIVPreset(
    strategy_id="strip-eth", asset=ETH, kind=PayoffKind.STRIP, iv_rate=490_000,
)
STRIP_BTC = FixedIVPreset(
    strategy_id="strip-btc", asset=BTC, kind=PayoffKind.STRIP,
    iv_rate=normalize_iv_rate(59 * 10**15, BTC.decimals),
)
STRAP_ETH = FixedIVPreset(
    strategy_id="strap-eth", asset=ETH, kind=PayoffKind.STRAP, iv_rate=550_000,
)
STRAP_BTC = FixedIVPreset(
    strategy_id="strap-btc", asset=BTC, kind=PayoffKind.STRAP,
    iv_rate=normalize_iv_rate(61 * 10**15, BTC.decimals),
)
# The straddle pricers are deployed with the same 800000 for both assets,
# already per whole unit.
STRADDLE_ETH = AdaptivePreset(
    strategy_id="straddle-eth", asset=ETH, kind=PayoffKind.STRADDLE, iv_rate=800_000,
)
STRADDLE_BTC = AdaptivePreset(
    strategy_id="straddle-btc", asset=BTC, kind=PayoffKind.STRADDLE, iv_rate=800_000,
)

ALL_PRESETS: tuple[Preset, ...] = (
    OTM_CALL_110_ETH, OTM_PUT_90_ETH, OTM_CALL_110_BTC, OTM_PUT_90_BTC,
    STRIP_ETH, STRIP_BTC, STRAP_ETH, STRAP_BTC, STRADDLE_ETH, STRADDLE_BTC,
)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_strategy(
    preset: Preset,
    ledger: CollateralLedger,
    oracle: PriceOracle,
    guard: OperatorGuard,
    *,
    now: UtcDatetime,
    k: int = 100,
) -> Ok[Strategy] | Err[ValidationError | PositionStateError]:
    """Build a preset's calculator and Strategy and register it with the ledger.

    OTM and adaptive calculators read utilization from ``ledger``.
    """
    config = StrategyConfig(
        strategy_id=preset.strategy_id,
        asset_id=preset.asset.asset_id,
        weights=weights_for(preset.kind),
        limit=preset.limit,
        underlying_decimals=preset.asset.decimals,
        quote_decimals=QUOTE_DECIMALS,
        k=k,
    )
    calculator: OtmPriceCalculator | FixedIVPriceCalculator | AdaptivePriceCalculator
    match preset:
        case OtmPreset():
            calculator = OtmPriceCalculator(
                OtmParams(
                    term_structure=preset.term_structure(),
                    bounds=preset.bounds,
                    strike_percentage=preset.strike_percentage,
                    strike_increment=preset.strike_increment,
                    utilization=preset.utilization,
                    quote_decimals=QUOTE_DECIMALS,
                ),
                guard,
                utilization_source=ledger,
                strategy_id=preset.strategy_id,
            )
        case FixedIVPreset():
            calculator = FixedIVPriceCalculator(
                FixedIVParams(
                    iv_rate=preset.iv_rate, bounds=preset.bounds, quote_decimals=QUOTE_DECIMALS,
                ),
                guard,
            )
        case AdaptivePreset():
            calculator = AdaptivePriceCalculator(
                AdaptiveParams(
                    iv_rate=preset.iv_rate,
                    bounds=preset.bounds,
                    utilization=preset.utilization,
                    quote_decimals=QUOTE_DECIMALS,
                ),
                guard,
                ledger,
                preset.strategy_id,
            )
    return Strategy.create(config, calculator, ledger, oracle, guard, now=now)
