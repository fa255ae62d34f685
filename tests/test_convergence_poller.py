from __future__ import annotations

import threading

import pytest

from serving_conformance.core.convergence.poller import ConvergencePoller, check_state
from serving_conformance.core.errors import (
    ConvergenceTimeout,
    NotFoundError,
    SetupFailure,
    StateCheckFailed,
    TransientAccessError,
)
from serving_conformance.core.observability.metrics import poll_attempts, snapshot_polls


class SequenceFetch:
    """Returns (or raises) the queued values in order, repeating the last one."""

    def __init__(self, *values):
        self.values = list(values)
        self.calls = []

    def __call__(self, name):
        self.calls.append(name)
        v = self.values[0] if len(self.values) == 1 else self.values.pop(0)
        if isinstance(v, BaseException):
            raise v
        return v


def _at_least(n):
    return lambda v: (v >= n, None)


def test_satisfied_on_first_fetch_returns_without_sleeping(poller, clock):
    fetch = SequenceFetch(5)
    out = poller.wait_for_state(fetch, "cfg", _at_least(1), "Settled")
    assert out == 5
    assert fetch.calls == ["cfg"]
    assert clock.sleeps == []
    assert poll_attempts("Settled") == 1


def test_polls_at_fixed_interval_until_satisfied(poller, clock):
    fetch = SequenceFetch(0, 1, 2, 3)
    out = poller.wait_for_state(fetch, "cfg", _at_least(3), "Settled")
    assert out == 3
    assert len(fetch.calls) == 4
    assert clock.sleeps == [0.5, 0.5, 0.5]


def test_fetches_fresh_snapshot_every_iteration(poller):
    seen = []

    def predicate(v):
        seen.append(v)
        return v == "c", None

    poller.wait_for_state(SequenceFetch("a", "b", "c"), "cfg", predicate, "Fresh")
    assert seen == ["a", "b", "c"]


def test_fatal_error_from_predicate_aborts_immediately(poller, clock):
    boom = SetupFailure("revision failed", resource="cfg")
    fetch = SequenceFetch(1)
    with pytest.raises(SetupFailure) as e:
        poller.wait_for_state(fetch, "cfg", lambda v: (False, boom), "Ready")
    assert e.value is boom
    assert len(fetch.calls) == 1
    assert clock.sleeps == []
    assert snapshot_polls()["outcome_fatal"] == 1


def test_exception_raised_by_predicate_propagates(poller):
    def predicate(v):
        raise KeyError("status")

    with pytest.raises(KeyError):
        poller.wait_for_state(SequenceFetch(1), "cfg", predicate, "Ready")


def test_timeout_names_condition_and_last_state(poller, clock):
    with pytest.raises(ConvergenceTimeout) as e:
        poller.wait_for_state(SequenceFetch(7), "cfg-a", _at_least(100), "ConfigurationIsReady")

    err = e.value
    assert err.condition == "ConfigurationIsReady"
    assert err.resource == "cfg-a"
    assert err.last_snapshot == 7
    assert err.reason == "timeout"
    assert "ConfigurationIsReady" in str(err)
    assert "cfg-a" in str(err)
    # 10s budget at 0.5s interval: first fetch plus one per sleep
    assert err.attempts == 21
    assert sum(clock.sleeps) == pytest.approx(10.0)
    assert snapshot_polls()["outcome_timeout"] == 1


def test_external_deadline_shortens_budget(poller, clock):
    with pytest.raises(ConvergenceTimeout) as e:
        poller.wait_for_state(SequenceFetch(0), "cfg", _at_least(1), "Settled", deadline=clock.now + 1.0)
    assert e.value.attempts == 3
    assert sum(clock.sleeps) == pytest.approx(1.0)


def test_last_sleep_is_clipped_to_remaining_budget(clock):
    p = ConvergencePoller(interval=2.0, timeout=3.0, clock=clock, sleep=clock.sleep)
    with pytest.raises(ConvergenceTimeout):
        p.wait_for_state(SequenceFetch(0), "cfg", _at_least(1), "Settled")
    assert clock.sleeps == [2.0, 1.0]


def test_transient_fetch_errors_are_retried(poller):
    fetch = SequenceFetch(TransientAccessError("503"), TransientAccessError("503"), 4)
    assert poller.wait_for_state(fetch, "cfg", _at_least(1), "Settled") == 4
    assert len(fetch.calls) == 3


def test_timeout_reports_last_transient_error(poller):
    with pytest.raises(ConvergenceTimeout) as e:
        poller.wait_for_state(SequenceFetch(TransientAccessError("connection reset")), "cfg", _at_least(1), "Settled")
    assert isinstance(e.value.last_error, TransientAccessError)
    assert "connection reset" in str(e.value)
    assert e.value.last_snapshot is None


def test_fatal_fetch_errors_are_not_retried(poller, clock):
    fetch = SequenceFetch(NotFoundError("gone", resource="cfg"))
    with pytest.raises(NotFoundError):
        poller.wait_for_state(fetch, "cfg", _at_least(1), "Settled")
    assert len(fetch.calls) == 1
    assert clock.sleeps == []


def test_cancel_event_set_before_start_returns_canceled_timeout(poller):
    cancel = threading.Event()
    cancel.set()
    fetch = SequenceFetch(0)
    with pytest.raises(ConvergenceTimeout) as e:
        poller.wait_for_state(fetch, "cfg", _at_least(1), "Settled", cancel=cancel)
    assert e.value.reason == "canceled"
    assert fetch.calls == []


def test_cancel_interrupts_wait_between_polls():
    cancel = threading.Event()
    p = ConvergencePoller(interval=30.0, timeout=600.0)
    fetch = SequenceFetch(0)
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        with pytest.raises(ConvergenceTimeout) as e:
            p.wait_for_state(fetch, "cfg", _at_least(1), "Settled", cancel=cancel)
    finally:
        timer.cancel()
    assert e.value.reason == "canceled"
    assert len(fetch.calls) == 1


def test_invalid_configuration_rejected():
    with pytest.raises(ValueError):
        ConvergencePoller(interval=0)
    with pytest.raises(ValueError):
        ConvergencePoller(timeout=-1)


def test_check_state_single_shot():
    fetch = SequenceFetch(3)
    assert check_state(fetch, "rev", _at_least(1), "Ok") == 3
    assert fetch.calls == ["rev"]


def test_check_state_unsatisfied_carries_snapshot():
    with pytest.raises(StateCheckFailed) as e:
        check_state(SequenceFetch(0), "rev", _at_least(1), "Ok")
    assert e.value.snapshot == 0
    assert e.value.resource == "rev"
    assert e.value.details["condition"] == "Ok"
