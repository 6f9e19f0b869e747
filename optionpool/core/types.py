"""Time types: UtcDatetime and period helpers.

The host environment supplies "now" on every call; the engine never reads
the wall clock for lifecycle decisions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import final

SECONDS_PER_DAY: int = 86_400


@final
@dataclass(frozen=True, slots=True, order=True)
class UtcDatetime:
    """Timezone-aware UTC datetime. Naive datetimes are rejected."""

    value: datetime

    def __post_init__(self) -> None:
        if self.value.tzinfo is None:
            raise TypeError("UtcDatetime requires timezone-aware datetime, got naive")

    @staticmethod
    def now() -> UtcDatetime:
        """Current UTC time. Used for error timestamps only."""
        return UtcDatetime(value=datetime.now(tz=UTC))

    def plus_seconds(self, seconds: int) -> UtcDatetime:
        return UtcDatetime(value=self.value + timedelta(seconds=seconds))


def days(n: int) -> int:
    """Period length in seconds for n whole days."""
    return n * SECONDS_PER_DAY
