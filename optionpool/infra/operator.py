"""Operator capability check for runtime parameter changes.

Pricing and accounting logic never looks at who is calling; only the
configuration setters pass through OperatorGuard.authorize().
"""

from __future__ import annotations

import logging
from typing import final

from optionpool.core.errors import AuthorizationError
from optionpool.core.result import Err, Ok
from optionpool.core.types import UtcDatetime

logger = logging.getLogger(__name__)


@final
class OperatorGuard:
    """Holds the single trusted operator identity."""

    def __init__(self, operator: str) -> None:
        if not operator:
            raise TypeError("OperatorGuard requires a non-empty operator id")
        self._operator = operator

    @property
    def operator(self) -> str:
        return self._operator

    def authorize(self, caller: str, action: str) -> Ok[None] | Err[AuthorizationError]:
        if caller == self._operator:
            return Ok(None)
        logger.warning("Rejected %s by non-operator %s", action, caller)
        return Err(AuthorizationError(
            message=f"{action}: caller {caller!r} is not the operator",
            code="UNAUTHORIZED",
            timestamp=UtcDatetime.now(),
            source="infra.operator.OperatorGuard.authorize",
            caller=caller,
        ))
