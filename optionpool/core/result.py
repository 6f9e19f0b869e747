"""Ok / Err values returned by every fallible pool operation.

Business rejections (limit exceeded, position not active, missing price)
are returned, never raised. Callers dispatch with ``match``:

    match ledger.lock(strategy_id, amount, now=now):
        case Err() as e:
            return e
        case Ok():
            pass

Only boundary code (scripts, tests) turns an Err into an exception, through
unwrap().
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, final


@final
@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def map[U](self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))

    def bind[U, E](self, f: Callable[[T], Ok[U] | Err[E]]) -> Ok[U] | Err[E]:
        """Run the next fallible step on the value."""
        return f(self.value)


@final
@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def map(self, f: Callable[[Any], Any]) -> Err[E]:  # noqa: ARG002
        return self

    def bind(self, f: Callable[[Any], Any]) -> Err[E]:  # noqa: ARG002
        return self


type Result[T, E] = Ok[T] | Err[E]


class Rejected(RuntimeError):
    """An Err reached code that has no way to handle it."""

    def __init__(self, error: object) -> None:
        super().__init__(f"unwrap on Err: {error}")
        self.error = error


def unwrap[T](result: Ok[T] | Err[Any]) -> T:
    """The Ok value, or raise Rejected carrying the error value."""
    if isinstance(result, Err):
        raise Rejected(result.error)
    if not isinstance(result, Ok):
        raise TypeError(f"Expected Ok or Err, got {type(result).__name__}")
    return result.value


def collect[T, E](results: Iterable[Ok[T] | Err[E]]) -> Ok[tuple[T, ...]] | Err[E]:
    """Gather Ok values in order, returning the first Err instead.

    ``results`` is consumed lazily: given a generator of side-effecting
    steps, nothing after the failing step runs.
    """
    values: list[T] = []
    for r in results:
        if isinstance(r, Err):
            return r
        values.append(r.value)
    return Ok(tuple(values))
