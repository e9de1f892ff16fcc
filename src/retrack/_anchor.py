"""Data anchor — plain Python structures that hold all process-wide tracker state.

The scheduler queues and guard flags live in a single SchedulerState instance,
and the live-computation registry maps ids to Computations. Behavior modules
read and mutate these through the module attributes, never through copies.
"""

from __future__ import annotations

import itertools
from collections import deque
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from retrack.computation import Computation


class SchedulerState:
    """Pending queue, after-flush queue, and the flush/compute guard flags."""

    __slots__ = (
        "pending",
        "after_flush",
        "will_flush",
        "in_flush",
        "in_compute",
        "throw_first_error",
        "host_missing_logged",
    )

    def __init__(self) -> None:
        self.clear()

    def clear(self) -> None:
        # computations whose bodies should rerun at flush time
        self.pending: deque[Computation] = deque()
        self.after_flush: deque[Callable[[], object]] = deque()
        # a flush is scheduled, or one is running now
        self.will_flush = False
        self.in_flush = False
        # a body is executing, first run or rerun; stays True inside nonreactive()
        self.in_compute = False
        self.throw_first_error = False
        # the "no host" debug record was emitted since the last flush
        self.host_missing_logged = False

    def __repr__(self) -> str:
        return (
            f"SchedulerState(pending={len(self.pending)}, "
            f"after_flush={len(self.after_flush)}, in_flush={self.in_flush})"
        )


state = SchedulerState()

# Live computations, keyed by id. Entries are removed exactly once, on stop.
computations: dict[int, Computation] = {}

# Ids are never reused, not even across reset().
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def reset() -> None:
    """Drop all queued work and forget live computations. For tests."""
    state.clear()
    computations.clear()
