"""In-memory price oracle.

Test double that lets the whole suite and the demo run without a live
feed. @final. Not production code.
"""

from __future__ import annotations

from decimal import Decimal
from typing import final

from optionpool.core.errors import MissingObservableError
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime
from optionpool.infra.protocols import PriceReading


@final
class InMemoryPriceOracle:
    """Price readings keyed by asset id, set by the test or demo driver."""

    def __init__(self) -> None:
        self._prices: dict[str, PriceReading] = {}

    def set_price(self, asset_id: str, price: Decimal, decimals: int = 8) -> None:
        self._prices[asset_id] = PriceReading(price=price, decimals=decimals)

    def set_raw_price(self, asset_id: str, raw: int, decimals: int = 8) -> None:
        """Store an integer feed answer, e.g. 320000000000 at 8 decimals."""
        self._prices[asset_id] = PriceReading.from_raw(raw, decimals)

    def latest_price(
        self, asset_id: str,
    ) -> Ok[PriceReading] | Err[MissingObservableError]:
        reading = self._prices.get(asset_id)
        if reading is not None:
            return Ok(reading)
        now = UtcDatetime.now()
        return Err(MissingObservableError(
            message=f"No price for asset {asset_id}",
            code="MISSING_PRICE",
            timestamp=now,
            source="memory_adapter.latest_price",
            observable=asset_id,
            as_of=now.value.isoformat(),
        ))

    def assets(self) -> tuple[str, ...]:
        """Test-only helper."""
        return tuple(sorted(self._prices))
