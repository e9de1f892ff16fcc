"""Execution context — which computation is running right now.

Uses a contextvar to hold the current computation. Any Dependency.depend()
call made while it is set subscribes that computation. Every write is a
token set/reset pair, so the previous value is restored even when the body
raises.
"""

from __future__ import annotations

import contextvars
from typing import TYPE_CHECKING, Callable, TypeVar

if TYPE_CHECKING:
    from retrack.computation import Computation

T = TypeVar("T")

current_computation: contextvars.ContextVar[Computation | None] = contextvars.ContextVar(
    "current_computation", default=None
)

_yield_guard: Callable[[Callable], Callable] | None = None


def get_current_computation() -> Computation | None:
    return current_computation.get()


def active() -> bool:
    """True if a computation is running and reads will subscribe it."""
    return current_computation.get() is not None


def nonreactive(fn: Callable[[], T]) -> T:
    """Run fn with no current computation and return its result.

    Dependencies read inside fn subscribe nothing. The enclosing computation,
    if any, is restored afterwards.

    Usage:
        def body(c):
            title.get()                        # subscribes c
            nonreactive(lambda: footer.get())  # does not
    """
    if not callable(fn):
        raise TypeError("nonreactive() requires a callable")
    token = current_computation.set(None)
    try:
        return fn()
    finally:
        current_computation.reset(token)


def set_yield_guard(guard: Callable[[Callable], Callable] | None) -> None:
    """Install a wrapper that forbids cooperative yields while a callback runs.

    guard(fn) must return a callable with fn's signature. Pass None to go back
    to calling callbacks directly.
    """
    global _yield_guard
    _yield_guard = guard


def no_yields_allowed(fn: Callable) -> Callable:
    if _yield_guard is None:
        return fn
    return _yield_guard(fn)
