"""Tests for the execution context: active, current computation, nonreactive."""

import pytest

from retrack import Dependency, active, autorun, get_current_computation, nonreactive


class TestExecutionContext:
    def test_inactive_outside_computations(self):
        assert not active()
        assert get_current_computation() is None

    def test_current_inside_body(self):
        seen = []
        c = autorun(lambda c: seen.append((active(), get_current_computation())))
        assert seen == [(True, c)]
        assert get_current_computation() is None

    def test_restored_after_nested_autorun(self):
        seen = []

        def outer(c):
            autorun(lambda inner: seen.append(get_current_computation() is inner))
            seen.append(get_current_computation() is c)

        autorun(outer)
        assert seen == [True, True]

    def test_restored_after_body_raises(self):
        with pytest.raises(ZeroDivisionError):
            autorun(lambda c: 1 / 0)
        assert get_current_computation() is None


class TestNonreactive:
    def test_returns_result(self):
        assert nonreactive(lambda: 7) == 7

    def test_clears_and_restores_current(self):
        seen = []

        def body(c):
            seen.append(nonreactive(get_current_computation))
            seen.append(get_current_computation() is c)

        autorun(body)
        assert seen == [None, True]

    def test_restores_after_raise(self):
        seen = []

        def boom():
            raise KeyError("x")

        def body(c):
            with pytest.raises(KeyError):
                nonreactive(boom)
            seen.append(get_current_computation() is c)

        autorun(body)
        assert seen == [True]

    def test_suppresses_subscriptions(self):
        d = Dependency()
        results = []
        autorun(lambda c: results.append(nonreactive(d.depend)))
        assert results == [False]
        assert not d.has_dependents()

    def test_requires_callable(self):
        with pytest.raises(TypeError):
            nonreactive(None)
