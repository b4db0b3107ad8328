"""
Success/failure results for collaborator calls.

Every call that crosses into storage, the position provider or the geocoder is
wrapped by `attempt()` and comes back as `Ok` or `Err` instead of raising. The
callers then decide what a failure means through one policy, `recover()`: log
it and keep the current (or default) value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar, Union

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    operation: str
    error: BaseException

    @property
    def ok(self) -> bool:
        return False

    def describe(self) -> str:
        return f"{self.operation} failed: {type(self.error).__name__}: {self.error}"


Result = Union[Ok[T], Err]


async def attempt(operation: str, call: Callable[[], Awaitable[T]]) -> Result[T]:
    """Await `call()` and capture any exception as `Err`."""
    try:
        return Ok(await call())
    except Exception as exc:
        return Err(operation=operation, error=exc)


def recover(result: Result[T], fallback: T, *, log: logging.Logger | None = None) -> T:
    """Map a result to a value: the payload on success, `fallback` on failure (logged)."""
    if isinstance(result, Ok):
        return result.value
    (log or logger).warning("%s; keeping fallback", result.describe())
    return fallback
