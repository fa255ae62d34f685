"""
Conformance settings: defaults, overrides file, environment.
"""
from __future__ import annotations

import json

import pytest

from serving_conformance.core.config import ConformanceSettings, load_settings, load_settings_file


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for key in (
        "CONFORMANCE_POLL_INTERVAL_SECONDS",
        "CONFORMANCE_POLL_TIMEOUT_SECONDS",
        "CONFORMANCE_NAMESPACE",
        "CONFORMANCE_API_URL",
        "CONFORMANCE_DISABLE_OPTIONAL_API",
        "CONFORMANCE_PARALLELISM",
        "CONFORMANCE_CONFIG_FILE",
    ):
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    s = load_settings()
    assert s.poll_interval_seconds == pytest.approx(1.0)
    assert s.poll_timeout_seconds == pytest.approx(600.0)
    assert s.api_url == ""
    assert s.disable_optional_api is False
    assert s.parallelism == 4


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CONFORMANCE_POLL_INTERVAL_SECONDS", "0.25")
    monkeypatch.setenv("CONFORMANCE_NAMESPACE", "  conformance  ")
    monkeypatch.setenv("CONFORMANCE_DISABLE_OPTIONAL_API", "true")
    s = load_settings()
    assert s.poll_interval_seconds == pytest.approx(0.25)
    assert s.namespace == "conformance"
    assert s.disable_optional_api is True


def test_yaml_file_then_env_then_kwargs(tmp_path, monkeypatch):
    f = tmp_path / "conformance.yaml"
    f.write_text("namespace: from-file\nparallelism: 2\npoll_timeout_seconds: 30\n", encoding="utf-8")
    monkeypatch.setenv("CONFORMANCE_PARALLELISM", "3")

    s = load_settings(f, poll_timeout_seconds=None, namespace="from-kwargs")
    assert s.namespace == "from-kwargs"
    assert s.parallelism == 3
    assert s.poll_timeout_seconds == pytest.approx(30.0)


def test_json_file_via_env(tmp_path, monkeypatch):
    f = tmp_path / "conformance.json"
    f.write_text(json.dumps({"api_url": "http://serving.local"}), encoding="utf-8")
    monkeypatch.setenv("CONFORMANCE_CONFIG_FILE", str(f))
    assert load_settings().api_url == "http://serving.local"


def test_missing_file_is_empty(tmp_path):
    assert load_settings_file(tmp_path / "nope.yaml") == {}


def test_malformed_file_is_ignored(tmp_path, caplog):
    f = tmp_path / "bad.yaml"
    f.write_text("this: is: not: valid: yaml:\n  {{{{", encoding="utf-8")
    assert load_settings_file(f) == {}
    assert "Failed to parse settings file" in caplog.text


def test_non_mapping_and_unknown_keys(tmp_path, caplog):
    f = tmp_path / "list.json"
    f.write_text(json.dumps([1, 2]), encoding="utf-8")
    assert load_settings_file(f) == {}

    g = tmp_path / "extra.json"
    g.write_text(json.dumps({"namespace": "x", "bogus": 1}), encoding="utf-8")
    assert load_settings_file(g) == {"namespace": "x"}
    assert "bogus" in caplog.text


def test_invalid_values_raise_value_error(monkeypatch):
    monkeypatch.setenv("CONFORMANCE_POLL_INTERVAL_SECONDS", "0")
    with pytest.raises(ValueError):
        load_settings()


def test_model_validates_directly():
    with pytest.raises(ValueError):
        ConformanceSettings(parallelism=0)
