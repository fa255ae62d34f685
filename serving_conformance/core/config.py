"""
Conformance run settings.

Resolution order (later wins):
  1) Built-in defaults
  2) Optional YAML/JSON overrides file (CONFORMANCE_CONFIG_FILE)
  3) Environment variables

Environment variables:
    CONFORMANCE_POLL_INTERVAL_SECONDS - fixed delay between polls (default 1.0)
    CONFORMANCE_POLL_TIMEOUT_SECONDS - budget for one convergence wait (default 600)
    CONFORMANCE_NAMESPACE - namespace scenarios create resources in
    CONFORMANCE_API_URL - serving API base URL (empty = in-memory platform)
    CONFORMANCE_HTTP_TIMEOUT_SECONDS - per-request timeout of the HTTP accessor
    CONFORMANCE_DISABLE_OPTIONAL_API - skip scenarios that need create/update APIs
    CONFORMANCE_PARALLELISM - scenario workers
    CONFORMANCE_TEST_IMAGE - container image for created Configurations
    CONFORMANCE_FAKE_CONTROLLER_LAG - stale reads served by the in-memory controller
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

_log = logging.getLogger("conformance.config")

DEFAULT_TEST_IMAGE = "ghcr.io/knative/helloworld-go:latest"


class ConformanceSettings(BaseModel):
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    poll_timeout_seconds: float = Field(default=600.0, gt=0)
    namespace: str = "serving-tests"
    api_url: str = ""
    http_timeout_seconds: float = Field(default=20.0, gt=0)
    disable_optional_api: bool = False
    parallelism: int = Field(default=4, ge=1)
    test_image: str = DEFAULT_TEST_IMAGE
    fake_controller_lag: int = Field(default=0, ge=0)


_ENV_KEYS = {
    "CONFORMANCE_POLL_INTERVAL_SECONDS": "poll_interval_seconds",
    "CONFORMANCE_POLL_TIMEOUT_SECONDS": "poll_timeout_seconds",
    "CONFORMANCE_NAMESPACE": "namespace",
    "CONFORMANCE_API_URL": "api_url",
    "CONFORMANCE_HTTP_TIMEOUT_SECONDS": "http_timeout_seconds",
    "CONFORMANCE_DISABLE_OPTIONAL_API": "disable_optional_api",
    "CONFORMANCE_PARALLELISM": "parallelism",
    "CONFORMANCE_TEST_IMAGE": "test_image",
    "CONFORMANCE_FAKE_CONTROLLER_LAG": "fake_controller_lag",
}


def _env_flag(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes")


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for env_key, field_name in _ENV_KEYS.items():
        raw = (os.getenv(env_key) or "").strip()
        if not raw:
            continue
        if field_name == "disable_optional_api":
            out[field_name] = _env_flag(raw)
        else:
            out[field_name] = raw
    return out


def load_settings_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load setting overrides from a YAML or JSON file.

    Returns an empty dict if the file is absent, unreadable or malformed; the
    caller falls back to defaults and environment variables in that case.
    """
    resolved = _resolve_path(path)
    if resolved is None or not resolved.exists():
        return {}

    try:
        raw_text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        _log.warning("Cannot read settings file %s: %s", resolved, exc)
        return {}

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            _log.warning("Failed to parse settings file %s as JSON or YAML: %s", resolved, exc)
            return {}

    if not isinstance(data, dict):
        _log.warning("Settings file %s must be a mapping, got %s", resolved, type(data).__name__)
        return {}

    known = set(ConformanceSettings.model_fields)
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        _log.warning("Ignoring unknown settings in %s: %s", resolved, unknown)
    overrides = {k: v for k, v in data.items() if k in known}
    if overrides:
        _log.info("Loaded %d setting overrides from %s", len(overrides), resolved)
    return overrides


def _resolve_path(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env_path = os.getenv("CONFORMANCE_CONFIG_FILE", "").strip()
    if env_path:
        return Path(env_path)
    return None


def load_settings(path: Optional[Path] = None, **overrides: Any) -> ConformanceSettings:
    """Build settings from file + env; keyword overrides win over both."""
    merged: Dict[str, Any] = {}
    merged.update(load_settings_file(path))
    merged.update(_env_overrides())
    merged.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return ConformanceSettings(**merged)
    except ValidationError as exc:
        raise ValueError(f"invalid conformance settings: {exc}") from exc
