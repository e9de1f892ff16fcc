"""Dependencies — change notifiers that computations subscribe to by reading.

A Dependency keeps the computations that called depend() since their last
run. changed() invalidates all of them. Subscriptions clean themselves up:
each one is dropped the moment its computation is invalidated, and the
computation's next run subscribes again if it still reads the dependency.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from retrack._tracking import current_computation

if TYPE_CHECKING:
    from retrack.computation import Computation


class Dependency:
    """A set of subscribed computations, keyed by computation id."""

    __slots__ = ("_dependents_by_id",)

    def __init__(self) -> None:
        self._dependents_by_id: dict[int, Computation] = {}

    def depend(self, computation: Computation | None = None) -> bool:
        """Subscribe computation, or the current one. True if newly subscribed."""
        if computation is None:
            computation = current_computation.get()
            if computation is None:
                return False

        cid = computation.id
        if cid in self._dependents_by_id:
            return False

        self._dependents_by_id[cid] = computation
        computation.on_invalidate(lambda _c: self._dependents_by_id.pop(cid, None))
        return True

    def changed(self) -> None:
        """Invalidate every subscribed computation.

        If an invalidation callback raises, the remaining subscribers are still
        invalidated and the first error is re-raised afterwards.
        """
        error: Exception | None = None
        for cid in list(self._dependents_by_id):
            # an earlier invalidation in this pass may have unsubscribed it
            computation = self._dependents_by_id.get(cid)
            if computation is None:
                continue
            try:
                computation.invalidate()
            except Exception as exc:
                if error is None:
                    error = exc
        if error is not None:
            raise error

    def has_dependents(self) -> bool:
        return bool(self._dependents_by_id)

    def __repr__(self) -> str:
        return f"Dependency(dependents={sorted(self._dependents_by_id)})"
