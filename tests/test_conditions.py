import pytest

from serving_conformance.core.convergence.conditions import (
    annotations_updated,
    is_configuration_ready,
    labels_updated,
    revision_annotations_isolated,
    revision_labels_isolated,
)
from serving_conformance.core.errors import SetupFailure
from serving_conformance.core.resources.models import (
    Condition,
    Configuration,
    ConfigurationStatus,
    ObjectMeta,
    Revision,
)


def _cfg(*, generation=1, observed=1, ready=None, labels=None, annotations=None) -> Configuration:
    conditions = [Condition(type="Ready", status=ready, reason="RevisionFailed" if ready == "False" else None)] if ready else []
    return Configuration(
        metadata=ObjectMeta(name="cfg", generation=generation, labels=labels or {}, annotations=annotations or {}),
        status=ConfigurationStatus(observed_generation=observed, conditions=conditions),
    )


def test_ready_requires_condition_and_settled_generation():
    assert is_configuration_ready(_cfg(ready="True")) == (True, None)
    assert is_configuration_ready(_cfg(ready="True", generation=2, observed=1)) == (False, None)
    assert is_configuration_ready(_cfg(ready="Unknown")) == (False, None)
    assert is_configuration_ready(_cfg()) == (False, None)


def test_ready_false_for_current_generation_is_fatal():
    done, fatal = is_configuration_ready(_cfg(ready="False"))
    assert done is False
    assert isinstance(fatal, SetupFailure)
    assert "RevisionFailed" in str(fatal)


def test_ready_false_for_stale_generation_keeps_waiting():
    assert is_configuration_ready(_cfg(ready="False", generation=2, observed=1)) == (False, None)


@pytest.mark.parametrize("factory,field", [(labels_updated, "labels"), (annotations_updated, "annotations")])
def test_metadata_updated_needs_exact_map_and_settled(factory, field):
    want = {"a": "1", "b": "2"}
    check = factory(want)
    assert check(_cfg(**{field: dict(want)})) == (True, None)
    assert check(_cfg(**{field: {"a": "1"}})) == (False, None)
    assert check(_cfg(**{field: {**want, "extra": "x"}})) == (False, None)
    assert check(_cfg(generation=2, observed=1, **{field: dict(want)})) == (False, None)


def test_revision_isolation_predicates():
    rev = Revision(metadata=ObjectMeta(name="cfg-00001", labels={"label-x": "abc"}, annotations={"note": "n"}))
    assert revision_labels_isolated({"label-x": "abc"})(rev) == (False, None)
    assert revision_labels_isolated({"label-z": "abc"})(rev) == (True, None)
    assert revision_annotations_isolated({"annotation-a": "123"})(rev) == (True, None)
