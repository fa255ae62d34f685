from __future__ import annotations

from typing import Callable, Dict, Mapping

from serving_conformance.core.errors import SetupFailure
from serving_conformance.core.resources.models import Configuration, Revision

from .generation import track_generation
from .isolation import check_no_keys_present
from .poller import PredicateResult

# Condition labels used in logs, metrics and timeout errors.
CONFIGURATION_IS_READY = "ConfigurationIsReady"
LABELS_UPDATED = "ConfigurationMetadataUpdatedWithLabels"
ANNOTATIONS_UPDATED = "ConfigurationMetadataUpdatedWithAnnotations"
REVISION_LABELS_ISOLATED = "RevisionLabelsNotPropagated"
REVISION_ANNOTATIONS_ISOLATED = "RevisionAnnotationsNotPropagated"


def is_configuration_ready(cfg: Configuration) -> PredicateResult:
    """Ready=True for the current generation.

    Ready=False once the controller has observed the current generation is a
    definitive failure and aborts the wait.
    """
    gen = track_generation(cfg)
    ready = cfg.condition("Ready")
    if ready is None or not gen.settled:
        return False, None
    if ready.status == "False":
        return False, SetupFailure(
            f"Configuration {cfg.name} failed to become ready: {ready.reason}: {ready.message}",
            resource=cfg.name,
            details={"reason": ready.reason, "message": ready.message},
        )
    return ready.status == "True", None


def labels_updated(expected: Mapping[str, str]) -> Callable[[Configuration], PredicateResult]:
    want: Dict[str, str] = dict(expected)

    def _check(cfg: Configuration) -> PredicateResult:
        return cfg.metadata.labels == want and track_generation(cfg).settled, None

    return _check


def annotations_updated(expected: Mapping[str, str]) -> Callable[[Configuration], PredicateResult]:
    want: Dict[str, str] = dict(expected)

    def _check(cfg: Configuration) -> PredicateResult:
        return cfg.metadata.annotations == want and track_generation(cfg).settled, None

    return _check


def revision_labels_isolated(introduced: Mapping[str, str]) -> Callable[[Revision], PredicateResult]:
    # Labels placed on the Configuration should _not_ appear on the Revision.
    def _check(rev: Revision) -> PredicateResult:
        return check_no_keys_present(introduced, rev.metadata.labels), None

    return _check


def revision_annotations_isolated(introduced: Mapping[str, str]) -> Callable[[Revision], PredicateResult]:
    def _check(rev: Revision) -> PredicateResult:
        return check_no_keys_present(introduced, rev.metadata.annotations), None

    return _check
