"""Flush scheduler — drains invalidated computations to a fixed point.

Invalidated computations queue up in _anchor.state.pending. A flush reruns
them front to back, then runs one after-flush callback at a time, looping
until both queues are empty. Flushes happen either explicitly (flush()) or
asynchronously through the host scheduler.

The host scheduler is any callable that takes a zero-argument function and
invokes it once, later. A host with timers can also supply a delayed form,
called as delayed(seconds, fn). By default the running asyncio loop is used,
which is the same as:

    retrack.set_scheduler(loop.call_soon, delayed=loop.call_later)

Without a host scheduler or a running loop, queued work waits for the next
explicit flush().
"""

from __future__ import annotations

import asyncio
import contextvars
import functools
import logging
from typing import Callable

from retrack import _anchor
from retrack._tracking import no_yields_allowed
from retrack.errors import UsageError

logger = logging.getLogger("retrack.scheduler")

# Recomputations allowed in one asynchronous flush before it yields.
YIELD_BUDGET = 1000

# Seconds before a flush that hit the budget resumes.
RESCHEDULE_DELAY = 0.01

_scheduler: Callable[[Callable[[], None]], object] | None = None
_delayed: Callable[[float, Callable[[], None]], object] | None = None


def set_scheduler(
    scheduler: Callable[[Callable[[], None]], object] | None,
    *,
    delayed: Callable[[float, Callable[[], None]], object] | None = None,
) -> None:
    """Set the host primitive used to run flushes asynchronously.

    Call once during startup:
        retrack.set_scheduler(app.call_later)

    scheduler(fn) must arrange for fn() to be called once, after the current
    synchronous code unwinds. delayed(seconds, fn), if given, is used when a
    flush that yielded asks to resume after a pause; without it the resume
    goes through scheduler(fn). Pass None to fall back to the running asyncio loop.
    """
    global _scheduler, _delayed
    _scheduler = scheduler
    _delayed = delayed if scheduler is not None else None


def _defer(fn: Callable[[], None], delay: float = 0.0) -> bool:
    """Hand fn to the host. Returns False if nothing could schedule it."""
    # Fresh context: the deferred call must not see the caller's computation.
    callback = functools.partial(contextvars.Context().run, fn)
    if _scheduler is not None:
        if delay and _delayed is not None:
            _delayed(delay, callback)
        else:
            _scheduler(callback)
        return True
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        state = _anchor.state
        if not state.host_missing_logged:
            state.host_missing_logged = True
            logger.debug("No host scheduler or running loop; work waits for flush()")
        return False
    if delay:
        loop.call_later(delay, callback)
    else:
        loop.call_soon(callback)
    return True


def _require_flush() -> None:
    state = _anchor.state
    if not state.will_flush:
        state.will_flush = _defer(_run_flush)
        if state.will_flush:
            logger.debug("Asynchronous flush scheduled")


def _throw_or_log(phase: str, exc: Exception) -> None:
    """Route a body error: re-raise it in throw-first-error mode, else log it."""
    if _anchor.state.throw_first_error:
        raise exc
    _log_error(phase, exc)


def _log_error(phase: str, exc: Exception) -> None:
    logger.error("Exception from retrack %s function: %s", phase, exc, exc_info=exc)


def flush(*, throw_first_error: bool = False) -> None:
    """Rerun every invalidated computation and run all after-flush callbacks now.

    Loops until nothing is left, however much new work the callbacks queue.
    With throw_first_error=True, the first error raised by a computation body
    is re-raised here once the rest of the work has been drained.
    """
    _run_flush(finish_synchronously=True, throw_first_error=throw_first_error)


def _run_flush(*, finish_synchronously: bool = False, throw_first_error: bool = False) -> None:
    state = _anchor.state
    if state.in_flush:
        raise UsageError("Can't call flush() while flushing")
    if state.in_compute:
        raise UsageError("Can't flush inside autorun")

    state.in_flush = True
    state.will_flush = True
    state.throw_first_error = throw_first_error
    state.host_missing_logged = False

    recomputed = 0
    interrupted = False
    try:
        while state.pending or state.after_flush:
            while state.pending:
                comp = state.pending.popleft()
                comp._recompute()
                if comp._needs_recompute():
                    state.pending.appendleft(comp)

                recomputed += 1
                if not finish_synchronously and recomputed > YIELD_BUDGET:
                    logger.debug("Yield budget reached after %d recomputations", recomputed)
                    return

            if state.after_flush:
                # one at a time; each may invalidate more computations
                callback = state.after_flush.popleft()
                try:
                    no_yields_allowed(callback)()
                except Exception as exc:
                    _log_error("afterFlush", exc)
    except Exception:
        # an error escaped in throw-first-error mode; drain the rest, logging
        state.in_flush = False
        _run_flush(finish_synchronously=finish_synchronously, throw_first_error=False)
        raise
    except BaseException:
        # interrupts reach the caller at once; queued work waits for the next flush
        interrupted = True
        raise
    finally:
        state.will_flush = False
        state.in_flush = False
        state.throw_first_error = False
        if state.pending or state.after_flush:
            if not finish_synchronously:
                # give the host a turn, then ask for another flush
                _defer(_require_flush, RESCHEDULE_DELAY)
            elif not interrupted:
                raise UsageError("Synchronous flush finished with work still queued")


def after_flush(callback: Callable[[], object]) -> None:
    """Run callback once, the next time no computation is waiting to rerun.

    Callbacks run in registration order, one at a time, with no current
    computation. Each may queue more reactive work, which is fully drained
    before the next callback runs.
    """
    if not callable(callback):
        raise TypeError("after_flush() requires a callable")
    _anchor.state.after_flush.append(callback)
    _require_flush()


def in_flush() -> bool:
    return _anchor.state.in_flush


def pending_count() -> int:
    """Number of computations waiting to rerun. Useful for testing."""
    return len(_anchor.state.pending)
