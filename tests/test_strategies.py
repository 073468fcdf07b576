"""Tests for ordered strategy fallback."""
import pytest

from scripture_rag.errors import ConfigurationError, RetrievalError, UpstreamUnavailable
from scripture_rag.strategies import Exhausted, Strategy, Succeeded, run_strategies


def _fail(error):
    def run():
        raise error
    return run


def _is_retrieval_error(e):
    return isinstance(e, RetrievalError)


def test_first_success_wins():
    calls = []

    def second():
        calls.append("second")
        return "b"

    outcome = run_strategies(
        [Strategy("first", lambda: "a"), Strategy("second", second)],
        _is_retrieval_error,
    )

    assert isinstance(outcome, Succeeded)
    assert (outcome.value, outcome.strategy, outcome.failures) == ("a", "first", [])
    assert calls == []


def test_transient_failure_advances_and_is_recorded():
    error = UpstreamUnavailable("store down")
    outcome = run_strategies(
        [Strategy("store", _fail(error)), Strategy("api", lambda: ["verse"])],
        _is_retrieval_error,
    )

    assert outcome.strategy == "api"
    assert outcome.value == ["verse"]
    assert [(f.strategy, f.error) for f in outcome.failures] == [("store", error)]


def test_all_failing_is_exhausted():
    outcome = run_strategies(
        [Strategy("a", _fail(ConfigurationError("no db"))), Strategy("b", _fail(UpstreamUnavailable("x")))],
        _is_retrieval_error,
    )

    assert isinstance(outcome, Exhausted)
    assert [f.strategy for f in outcome.failures] == ["a", "b"]
    assert isinstance(outcome.last_error, UpstreamUnavailable)


def test_non_transient_error_propagates():
    with pytest.raises(KeyError):
        run_strategies(
            [Strategy("a", _fail(KeyError("bug"))), Strategy("b", lambda: 1)],
            _is_retrieval_error,
        )


def test_empty_strategy_list():
    outcome = run_strategies([], _is_retrieval_error)

    assert isinstance(outcome, Exhausted)
    assert outcome.last_error is None
