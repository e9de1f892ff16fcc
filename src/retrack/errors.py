"""Errors raised for programming mistakes.

Failures inside computation bodies are not wrapped; they reach the
computation's on_error handler, the log, or the flush() caller as-is.
"""


class UsageError(RuntimeError):
    """The tracker API was called in a way it never supports.

    Raised synchronously at the call site: constructing a Computation
    directly, flushing while a flush runs, flushing from inside a
    computation body, or on_invalidate() with no current computation.
    """
