"""Shared fixtures: every test starts with an empty tracker."""

import pytest

from retrack import _anchor, set_scheduler, set_yield_guard


@pytest.fixture(autouse=True)
def reset_tracker():
    """Clear queues, flags and live computations before and after each test."""
    _anchor.reset()
    set_scheduler(None)
    set_yield_guard(None)
    yield
    _anchor.reset()
    set_scheduler(None)
    set_yield_guard(None)
