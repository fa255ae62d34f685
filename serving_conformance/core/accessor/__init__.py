from __future__ import annotations

from typing import Optional

from serving_conformance.core.config import ConformanceSettings

from .base import ResourceAccessor
from .http import HttpResourceAccessor
from .memory import FakeController, InMemoryAccessor, InMemoryServingStore, get_shared_store


def build_accessor(
    settings: ConformanceSettings,
    *,
    store: Optional[InMemoryServingStore] = None,
) -> ResourceAccessor:
    """HTTP accessor when an API URL is configured, otherwise the in-memory platform."""
    if settings.api_url:
        return HttpResourceAccessor(
            settings.api_url,
            namespace=settings.namespace,
            timeout=settings.http_timeout_seconds,
        )
    if store is None:
        store = get_shared_store(controller=FakeController(lag=settings.fake_controller_lag))
    return InMemoryAccessor(store, namespace=settings.namespace)


__all__ = [
    "ResourceAccessor",
    "HttpResourceAccessor",
    "InMemoryAccessor",
    "InMemoryServingStore",
    "FakeController",
    "build_accessor",
    "get_shared_store",
]
