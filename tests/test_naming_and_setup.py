import logging
import re

import pytest

from serving_conformance.core.errors import AccessorError, NotFoundError
from serving_conformance.core.naming import ResourceNames, object_name_for_test
from serving_conformance.core.setup import configuration_for, create_configuration, ensure_teardown

_DNS_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


@pytest.mark.parametrize(
    "test_name,prefix",
    [
        ("TestUpdateConfigurationMetadata", "update-configuration-metadata-"),
        ("TestConfigurationGetAndList", "configuration-get-and-list-"),
        ("test_snake_case", "snake-case-"),
    ],
)
def test_object_name_is_dns_safe_and_prefixed(test_name, prefix):
    name = object_name_for_test(test_name)
    assert name.startswith(prefix)
    assert _DNS_LABEL.match(name)
    assert len(name) <= 63


def test_object_names_are_unique():
    names = {object_name_for_test("TestConfigurationGetAndList") for _ in range(50)}
    assert len(names) == 50


def test_long_test_names_are_truncated():
    name = object_name_for_test("Test" + "VeryLong" * 20)
    assert len(name) <= 63
    assert _DNS_LABEL.match(name)


def test_configuration_for_uses_image():
    cfg = configuration_for(ResourceNames(config="cfg", image="img:v3"), labels={"a": "b"})
    assert cfg.metadata.name == "cfg"
    assert cfg.metadata.labels == {"a": "b"}
    assert cfg.spec.template.spec.containers[0].image == "img:v3"
    wire = cfg.to_wire()
    assert wire["apiVersion"] == "serving.knative.dev/v1"
    assert wire["kind"] == "Configuration"


def test_teardown_deletes_on_error(accessor):
    names = ResourceNames(config="cfg-td", image="img")
    with pytest.raises(RuntimeError):
        with ensure_teardown(accessor, names):
            create_configuration(accessor, names)
            raise RuntimeError("scenario blew up")
    with pytest.raises(NotFoundError):
        accessor.get_configuration("cfg-td")


def test_teardown_tolerates_missing_resource(accessor):
    with ensure_teardown(accessor, ResourceNames(config="never-created", image="img")):
        pass


def test_teardown_logs_other_accessor_errors(accessor, caplog):
    caplog.set_level(logging.WARNING, logger="conformance.setup")

    def broken(name):
        raise AccessorError("forbidden", resource=name, status_code=403)

    accessor.delete_configuration = broken
    with ensure_teardown(accessor, ResourceNames(config="cfg-x", image="img")):
        pass
    assert "Teardown of configuration cfg-x failed" in caplog.text
