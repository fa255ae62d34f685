import pytest

from serving_conformance.core.scenarios.models import ScenarioState as S
from serving_conformance.core.scenarios.state_machine import (
    allowed_next,
    can_transition,
    ensure_transition,
    is_terminal,
)


def test_metadata_update_path_is_allowed():
    path = [
        S.CREATED,
        S.READY,
        S.LABELS_MUTATED,
        S.LABELS_CONVERGED,
        S.ANNOTATIONS_MUTATED,
        S.ANNOTATIONS_CONVERGED,
        S.DONE,
    ]
    for src, dst in zip(path, path[1:]):
        ensure_transition(src, dst)


def test_failed_reachable_from_any_live_state():
    for s in S:
        if is_terminal(s):
            assert not can_transition(s, S.FAILED)
        else:
            assert can_transition(s, S.FAILED)


def test_terminal_states_are_absorbing():
    for t in (S.DONE, S.FAILED, S.SKIPPED):
        assert allowed_next(t) == {}


def test_illegal_transitions_raise():
    with pytest.raises(ValueError):
        ensure_transition(S.CREATED, S.LABELS_MUTATED)
    with pytest.raises(ValueError):
        ensure_transition(S.LABELS_MUTATED, S.ANNOTATIONS_MUTATED)
    with pytest.raises(ValueError):
        ensure_transition(S.READY, S.SKIPPED)


def test_allowed_next_from_ready():
    nxt = allowed_next(S.READY)
    assert nxt["LABELS_MUTATED"] is True
    assert nxt["LISTED"] is True
    assert nxt["FAILED"] is True
    assert "DONE" not in nxt
