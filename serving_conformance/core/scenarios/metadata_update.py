from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict

from serving_conformance.core.convergence.conditions import (
    ANNOTATIONS_UPDATED,
    LABELS_UPDATED,
    REVISION_ANNOTATIONS_ISOLATED,
    REVISION_LABELS_ISOLATED,
    annotations_updated,
    labels_updated,
    revision_annotations_isolated,
    revision_labels_isolated,
)
from serving_conformance.core.convergence.isolation import leaked_keys
from serving_conformance.core.convergence.poller import check_state
from serving_conformance.core.errors import (
    AccessorError,
    ConvergenceTimeout,
    InvariantViolation,
    StateCheckFailed,
    UpdateRejected,
)
from serving_conformance.core.resources.models import Configuration

from .base import Scenario
from .models import ScenarioFailure, ScenarioState

log = logging.getLogger("conformance.scenario")

NEW_LABELS = {
    "label-x": "abc",
    "label-y": "def",
}

NEW_ANNOTATIONS = {
    "annotation-a": "123",
    "annotation-b": "456",
}


@dataclass(frozen=True)
class MetadataPhase:
    kind: str  # "labels" | "annotations"
    new_values: Dict[str, str]
    mutated: ScenarioState
    converged: ScenarioState
    condition: str
    updated: Callable
    isolation_condition: str
    isolated: Callable


LABELS_PHASE = MetadataPhase(
    kind="labels",
    new_values=NEW_LABELS,
    mutated=ScenarioState.LABELS_MUTATED,
    converged=ScenarioState.LABELS_CONVERGED,
    condition=LABELS_UPDATED,
    updated=labels_updated,
    isolation_condition=REVISION_LABELS_ISOLATED,
    isolated=revision_labels_isolated,
)

ANNOTATIONS_PHASE = MetadataPhase(
    kind="annotations",
    new_values=NEW_ANNOTATIONS,
    mutated=ScenarioState.ANNOTATIONS_MUTATED,
    converged=ScenarioState.ANNOTATIONS_CONVERGED,
    condition=ANNOTATIONS_UPDATED,
    updated=annotations_updated,
    isolation_condition=REVISION_ANNOTATIONS_ISOLATED,
    isolated=revision_annotations_isolated,
)


def union_maps(*maps: Dict[str, str]) -> Dict[str, str]:
    """Merge left to right; later maps win on duplicate keys."""
    out: Dict[str, str] = {}
    for m in maps:
        out.update(m or {})
    return out


class MetadataUpdateScenario(Scenario):
    """Metadata-only updates must not create a Revision nor leak onto one.

    Labels first, then annotations. Convergence timeouts and invariant violations
    are recorded and the remaining checks still run; rejected updates, accessor
    errors and cancellation end the scenario.
    """

    name = "metadata-update"
    test_name = "TestUpdateConfigurationMetadata"
    optional_api = True

    def __init__(self, *args, phases=(LABELS_PHASE, ANNOTATIONS_PHASE), **kwargs):
        super().__init__(*args, **kwargs)
        self.phases = tuple(phases)

    def _steps(self) -> None:
        self._setup()
        for phase in self.phases:
            self._run_phase(phase)
        self._transition(ScenarioState.DONE)

    def _run_phase(self, phase: MetadataPhase) -> None:
        name = self.names.config

        self._ensure_not_canceled(f"updating {phase.kind}")
        log.info("Updating %s of Configuration %s", phase.kind, name)
        updated = self._apply(phase)
        self._transition(phase.mutated, f"{phase.kind} written")

        expected = dict(getattr(updated.metadata, phase.kind))
        try:
            self.wait_for_configuration(phase.updated(expected), phase.condition)
        except ConvergenceTimeout as e:
            if e.reason == "canceled":
                raise
            f = ScenarioFailure.from_error(e)
            f.message = f"The {phase.kind} for Configuration {name} were not updated: {e}"
            f.expected = expected
            f.actual = _metadata_of(e.last_snapshot, phase.kind)
            self._record(f)
        self._transition(phase.converged)

        self._check_no_new_revision(phase)
        self._check_isolation(phase)

    def _apply(self, phase: MetadataPhase) -> Configuration:
        name = self.names.config
        cfg = self.accessor.get_configuration(name)
        current = getattr(cfg.metadata, phase.kind)
        # Union with the new keys; a key already present takes the new value.
        setattr(cfg.metadata, phase.kind, union_maps(current, phase.new_values))
        try:
            return self.accessor.update_configuration(cfg)
        except AccessorError as e:
            raise UpdateRejected(
                f"Failed to update {phase.kind} for Configuration {name}: {e}",
                resource=name,
                details={"status_code": e.status_code, "error": type(e).__name__},
            ) from e

    def _check_no_new_revision(self, phase: MetadataPhase) -> None:
        name = self.names.config
        expected = self.report.baseline.latest_created_revision_name
        cfg = self.accessor.get_configuration(name)
        actual = cfg.status.latest_created_revision_name
        if expected != actual:
            err = InvariantViolation(
                f"Did not expect a new Revision after updating {phase.kind} for Configuration {name} - "
                f"expected Revision: {expected}, actual Revision: {actual}",
                resource=name,
                details={"invariant": "no_spurious_revision", "kind": phase.kind},
            )
            f = ScenarioFailure.from_error(err)
            f.expected = expected
            f.actual = actual
            self._record(f)

    def _check_isolation(self, phase: MetadataPhase) -> None:
        name = self.names.config
        revision = self.names.revision
        if not revision:
            self._record(
                ScenarioFailure(
                    kind=InvariantViolation.kind,
                    message=f"Configuration {name} has no Revision to check {phase.kind} against",
                    resource=name,
                )
            )
            return

        log.info("Validating %s were not propagated to Revision %s", phase.kind, revision)
        try:
            check_state(
                self.accessor.get_revision,
                revision,
                phase.isolated(phase.new_values),
                phase.isolation_condition,
            )
        except StateCheckFailed as e:
            leaked = leaked_keys(phase.new_values, _metadata_of(e.snapshot, phase.kind))
            err = InvariantViolation(
                f"The {phase.kind} for Revision {revision} of Configuration {name} should not have been updated: "
                f"unexpected keys {leaked}",
                resource=revision,
                details={"invariant": "propagation_isolation", "kind": phase.kind, "leaked_keys": leaked},
            )
            f = ScenarioFailure.from_error(err)
            f.expected = []
            f.actual = leaked
            self._record(f)
        except AccessorError as e:
            self._record(
                ScenarioFailure(
                    kind="accessor_error",
                    message=f"Could not fetch Revision {revision} of Configuration {name}: {e}",
                    resource=revision,
                    details={"status_code": e.status_code, "error": type(e).__name__},
                )
            )


def _metadata_of(obj, kind: str) -> Dict[str, str]:
    if obj is None:
        return {}
    return dict(getattr(obj.metadata, kind))
