"""Reactive variables — a single value that tracks its readers.

Reading a ReactiveVar inside a computation subscribes that computation.
Setting it to a different value invalidates every subscriber; they rerun at
the next flush.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from retrack.dependency import Dependency

T = TypeVar("T")


def _same(old: object, new: object) -> bool:
    return old is new or old == new


class ReactiveVar(Generic[T]):
    """A value cell built on one Dependency."""

    __slots__ = ("_value", "_dep", "_equals")

    def __init__(self, value: T, equals: Callable[[T, T], bool] | None = None) -> None:
        self._value = value
        self._dep = Dependency()
        self._equals = equals or _same

    def get(self) -> T:
        """Read the value. If inside a computation, subscribes it."""
        self._dep.depend()
        return self._value

    def peek(self) -> T:
        """Read the value without subscribing anything."""
        return self._value

    def set(self, value: T) -> None:
        """Write a new value. Subscribers are invalidated only if it differs."""
        if self._equals(self._value, value):
            return
        self._value = value
        self._dep.changed()

    def has_dependents(self) -> bool:
        return self._dep.has_dependents()

    def __repr__(self) -> str:
        return f"ReactiveVar({self._value!r})"
