# serving_conformance/core/scenarios/state_machine.py
from __future__ import annotations

from typing import Dict, Set, Tuple

from .models import ScenarioState


_ALLOWED: Set[Tuple[ScenarioState, ScenarioState]] = {
    # metadata-update scenario
    (ScenarioState.CREATED, ScenarioState.READY),
    (ScenarioState.READY, ScenarioState.LABELS_MUTATED),
    (ScenarioState.LABELS_MUTATED, ScenarioState.LABELS_CONVERGED),
    (ScenarioState.LABELS_CONVERGED, ScenarioState.ANNOTATIONS_MUTATED),
    (ScenarioState.ANNOTATIONS_MUTATED, ScenarioState.ANNOTATIONS_CONVERGED),
    (ScenarioState.ANNOTATIONS_CONVERGED, ScenarioState.DONE),
    # single-phase runs
    (ScenarioState.READY, ScenarioState.ANNOTATIONS_MUTATED),
    (ScenarioState.LABELS_CONVERGED, ScenarioState.DONE),

    # get-and-list scenario
    (ScenarioState.READY, ScenarioState.LISTED),
    (ScenarioState.LISTED, ScenarioState.DONE),

    # optional APIs disabled
    (ScenarioState.CREATED, ScenarioState.SKIPPED),
}

_TERMINAL: Set[ScenarioState] = {
    ScenarioState.DONE,
    ScenarioState.FAILED,
    ScenarioState.SKIPPED,
}


def is_terminal(state: ScenarioState) -> bool:
    return state in _TERMINAL


def can_transition(src: ScenarioState, dst: ScenarioState) -> bool:
    if src in _TERMINAL:
        return False
    # FAILED is absorbing and reachable from every live state
    if dst == ScenarioState.FAILED:
        return True
    return (src, dst) in _ALLOWED


def ensure_transition(src: ScenarioState, dst: ScenarioState) -> None:
    if not can_transition(src, dst):
        raise ValueError(f"Illegal transition: {src.value} -> {dst.value}")


def allowed_next(src: ScenarioState) -> Dict[str, bool]:
    out: Dict[str, bool] = {}
    if src in _TERMINAL:
        return out
    for a, b in _ALLOWED:
        if a == src:
            out[b.value] = True
    out[ScenarioState.FAILED.value] = True
    return out
