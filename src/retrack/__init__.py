"""retrack: transparent reactive computations with batched, glitch-free reruns."""

from importlib.metadata import version as _version

__version__ = _version("retrack")

from retrack._tracking import active, get_current_computation, nonreactive, set_yield_guard
from retrack.errors import UsageError
from retrack.scheduler import after_flush, flush, in_flush, pending_count, set_scheduler
from retrack.computation import Computation, autorun, on_invalidate, live_computations
from retrack.dependency import Dependency
from retrack.var import ReactiveVar

__all__ = [
    "Computation",
    "Dependency",
    "ReactiveVar",
    "UsageError",
    "autorun",
    "flush",
    "after_flush",
    "on_invalidate",
    "nonreactive",
    "active",
    "get_current_computation",
    "in_flush",
    "pending_count",
    "live_computations",
    "set_scheduler",
    "set_yield_guard",
]
