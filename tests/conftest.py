import os

import pytest
from fastapi.testclient import TestClient

from serving_conformance.api.endpoints.serving import get_store
from serving_conformance.api.main import app
from serving_conformance.core.accessor.http import HttpResourceAccessor
from serving_conformance.core.accessor.memory import FakeController, InMemoryAccessor, InMemoryServingStore
from serving_conformance.core.config import ConformanceSettings
from serving_conformance.core.convergence.poller import ConvergencePoller
from serving_conformance.core.observability.metrics import reset_metrics


@pytest.fixture(scope="session", autouse=True)
def _force_test_env():
    # Keep polling fast for anything that loads settings from the environment
    os.environ.setdefault("CONFORMANCE_POLL_INTERVAL_SECONDS", "0.01")
    os.environ.setdefault("CONFORMANCE_POLL_TIMEOUT_SECONDS", "5")


@pytest.fixture(autouse=True)
def _clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


class FakeClock:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def poller(clock):
    return ConvergencePoller(interval=0.5, timeout=10.0, clock=clock, sleep=clock.sleep)


@pytest.fixture()
def settings():
    return ConformanceSettings(
        poll_interval_seconds=0.01,
        poll_timeout_seconds=5,
        namespace="serving-tests",
        test_image="registry.example/helloworld:v1",
    )


@pytest.fixture()
def controller():
    return FakeController()


@pytest.fixture()
def store(controller):
    return InMemoryServingStore(controller=controller)


@pytest.fixture()
def accessor(store, settings):
    return InMemoryAccessor(store, namespace=settings.namespace)


@pytest.fixture()
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_store, None)


@pytest.fixture()
def http_accessor(client, settings):
    return HttpResourceAccessor("", namespace=settings.namespace, session=client)
