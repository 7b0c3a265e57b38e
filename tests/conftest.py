"""Pytest configuration and fixtures."""

from unittest.mock import MagicMock, patch

import pytest

from kreconcile.kinds import SERVICE
from kreconcile.kinds.registry import reset_registry
from kreconcile.meta import ObjectKey
from kreconcile.stores.memory import InMemoryStore


class FakeClock:
    """Stand-in for the time module: sleeping advances the clock instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def monotonic(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    """Replace the clock used by every retry and poll loop."""
    clock = FakeClock()
    with patch("kreconcile.retry.time", clock):
        yield clock


@pytest.fixture(autouse=True)
def clean_registry():
    """Each test starts with an empty kind registry."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def store():
    """An empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def spy_store(store):
    """The in-memory store wrapped so calls can be counted."""
    return MagicMock(wraps=store)


@pytest.fixture
def service_key():
    return ObjectKey(name="web", namespace="default")


@pytest.fixture
def sample_service():
    """Sample Service as a controller would build it."""
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": "web",
            "namespace": "default",
            "labels": {"app": "web"},
        },
        "spec": {
            "type": "NodePort",
            "selector": {"app": "web"},
            "ports": [
                {"port": 80, "targetPort": 8080, "nodePort": 30001, "protocol": "TCP"}
            ],
        },
    }


@pytest.fixture
def stored_service(store, sample_service):
    """The sample Service, already present in the store."""
    return store.create(SERVICE, sample_service)
