"""Reentrancy guard for the mutating pool entry points.

A guarded operation must call enter() before touching state and exit()
in a finally block. A nested enter() while another operation is in flight
returns REENTRANT_CALL instead of running. Operations that make no
external call only need check(): they run to completion or not at all.
"""

from __future__ import annotations

import logging
from typing import final

from optionpool.core.errors import PositionStateError
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime

logger = logging.getLogger(__name__)


@final
class ReentrancyGuard:
    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._in_flight: str | None = None

    @property
    def in_flight(self) -> str | None:
        """Name of the operation currently running, if any."""
        return self._in_flight

    def check(self, operation: str, position_id: int = -1) -> Ok[None] | Err[PositionStateError]:
        """Reject ``operation`` if another one is in flight, without entering."""
        if self._in_flight is not None:
            logger.warning(
                "%s: rejected reentrant %s during %s", self._owner, operation, self._in_flight,
            )
            return Err(PositionStateError(
                message=f"{operation} called while {self._in_flight} is in flight",
                code="REENTRANT_CALL",
                timestamp=UtcDatetime.now(),
                source=f"{self._owner}.{operation}",
                position_id=position_id,
                state=f"IN_FLIGHT:{self._in_flight}",
            ))
        return Ok(None)

    def enter(self, operation: str, position_id: int = -1) -> Ok[None] | Err[PositionStateError]:
        match self.check(operation, position_id):
            case Err() as e:
                return e
            case Ok():
                pass
        self._in_flight = operation
        return Ok(None)

    def exit(self) -> None:
        self._in_flight = None
