"""Computations — bodies that rerun when the dependencies they read change.

A Computation runs its body once, synchronously, when autorun() creates it.
Reading a Dependency during the body subscribes the computation. When any
of those dependencies change, the computation is invalidated and queued;
the next flush reruns the body, which subscribes afresh.

Computations nest: one created while another is running is stopped as soon
as its creator is invalidated, so a rerun of the outer body rebuilds the
inner ones instead of piling up duplicates.
"""

from __future__ import annotations

from typing import Callable

from retrack import _anchor, scheduler
from retrack._tracking import active, current_computation, no_yields_allowed, nonreactive
from retrack.errors import UsageError

Body = Callable[["Computation"], object]
Callback = Callable[["Computation"], object]

# Only autorun() holds this, which keeps the constructor private.
_CONSTRUCT = object()


class Computation:
    """A re-runnable unit of reactive work.

    Attributes:
        stopped: True once stop() has run. Stopped computations never rerun.
        invalidated: True if invalidated and not yet rerun, or if stopped.
        first_run: True only during the run made by autorun().
    """

    __slots__ = (
        "_id",
        "stopped",
        "invalidated",
        "first_run",
        "_parent",
        "_fn",
        "_on_error",
        "_recomputing",
        "_on_invalidate_callbacks",
        "_on_stop_callbacks",
    )

    def __init__(
        self,
        fn: Body,
        parent: Computation | None,
        on_error: Callable[[Exception], object] | None = None,
        *,
        _key: object = None,
    ) -> None:
        if _key is not _CONSTRUCT:
            raise UsageError("Computation constructor is private; use autorun()")

        self.stopped = False
        self.invalidated = False
        self.first_run = True

        self._id = _anchor.new_id()
        self._on_invalidate_callbacks: list[Callback] = []
        self._on_stop_callbacks: list[Callback] = []
        # informational only; never used for ordering
        self._parent = parent
        self._fn = fn
        self._on_error = on_error
        self._recomputing = False

        _anchor.computations[self._id] = self

        errored = True
        try:
            self._compute()
            errored = False
        finally:
            self.first_run = False
            if errored:
                self.stop()

    @property
    def id(self) -> int:
        return self._id

    @property
    def parent(self) -> Computation | None:
        return self._parent

    def on_invalidate(self, callback: Callback) -> None:
        """Call callback(self) the next time this computation is invalidated.

        Runs immediately if it already is. Each registration fires at most once.
        """
        if not callable(callback):
            raise TypeError("on_invalidate() requires a callable")
        if self.invalidated:
            self._fire(callback)
        else:
            self._on_invalidate_callbacks.append(callback)

    def on_stop(self, callback: Callback) -> None:
        """Call callback(self) when this computation stops, after its on_invalidate callbacks.

        Runs immediately if it is already stopped.
        """
        if not callable(callback):
            raise TypeError("on_stop() requires a callable")
        if self.stopped:
            self._fire(callback)
        else:
            self._on_stop_callbacks.append(callback)

    def invalidate(self) -> None:
        """Mark this computation for rerun at the next flush."""
        if self.invalidated:
            return
        # Mid-recompute, the flush loop sees _needs_recompute() and retries us itself.
        if not self._recomputing and not self.stopped:
            scheduler._require_flush()
            _anchor.state.pending.append(self)

        self.invalidated = True

        # Set invalidated first: callbacks registered from here on fire at once.
        callbacks, self._on_invalidate_callbacks = self._on_invalidate_callbacks, []
        self._fire_all(callbacks)

    def stop(self) -> None:
        """Stop this computation for good. Safe to call repeatedly, from anywhere."""
        if self.stopped:
            return
        self.stopped = True
        try:
            self.invalidate()
        finally:
            _anchor.computations.pop(self._id, None)
            callbacks, self._on_stop_callbacks = self._on_stop_callbacks, []
            self._fire_all(callbacks)

    def _fire(self, callback: Callback) -> None:
        nonreactive(lambda: no_yields_allowed(callback)(self))

    def _fire_all(self, callbacks: list[Callback]) -> None:
        """Fire every callback in order, then re-raise the first error, if any."""
        error: Exception | None = None
        for callback in callbacks:
            try:
                self._fire(callback)
            except Exception as exc:
                if error is None:
                    error = exc
        if error is not None:
            raise error

    def _compute(self) -> None:
        self.invalidated = False

        state = _anchor.state
        token = current_computation.set(self)
        previous_in_compute = state.in_compute
        state.in_compute = True
        try:
            no_yields_allowed(self._fn)(self)
        finally:
            current_computation.reset(token)
            state.in_compute = previous_in_compute

    def _needs_recompute(self) -> bool:
        return self.invalidated and not self.stopped

    def _recompute(self) -> None:
        self._recomputing = True
        try:
            if self._needs_recompute():
                try:
                    self._compute()
                except Exception as exc:
                    if self._on_error is not None:
                        self._on_error(exc)
                    else:
                        scheduler._throw_or_log("recompute", exc)
        finally:
            self._recomputing = False

    def __repr__(self) -> str:
        if self.stopped:
            state = "stopped"
        elif self.invalidated:
            state = "invalidated"
        else:
            state = "valid"
        return f"Computation(id={self._id}, {getattr(self._fn, '__name__', 'fn')}, {state})"


def autorun(fn: Body, *, on_error: Callable[[Exception], object] | None = None) -> Computation:
    """Run fn(computation) now, then again whenever a dependency it read changes.

    Reruns happen at the next flush. Errors from a rerun go to on_error if
    given, otherwise they are logged. An error on the first run propagates
    from here and leaves the computation stopped.

    Returns the Computation (call .stop() to end it).

    Usage:
        name = ReactiveVar("Alice")
        seen = []

        c = autorun(lambda c: seen.append(name.get()))
        # seen == ["Alice"] — ran immediately

        name.set("Bob")
        flush()
        # seen == ["Alice", "Bob"]

        c.stop()
    """
    if not callable(fn):
        raise TypeError("autorun() requires a callable")

    c = Computation(fn, current_computation.get(), on_error, _key=_CONSTRUCT)

    if active():
        on_invalidate(lambda _parent: c.stop())

    return c


def on_invalidate(callback: Callback) -> None:
    """Register callback on the currently running computation. See Computation.on_invalidate."""
    computation = current_computation.get()
    if computation is None:
        raise UsageError("on_invalidate() requires a current computation")
    computation.on_invalidate(callback)


def live_computations() -> list[Computation]:
    """Computations that have not been stopped, oldest first."""
    return list(_anchor.computations.values())
