"""Fixtures for API unit tests: stub autoscaler, fresh metrics registry, AsyncClient."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from cluster_autoscaler.main import app
from cluster_autoscaler.observability.metrics import MetricsRegistry


@pytest.fixture
def registry():
    return MetricsRegistry()


@pytest.fixture
def stub_autoscaler():
    """AutoScaler stand-in so tests never reach Kubernetes or Neo4j."""
    scaler = AsyncMock()
    scaler.reconcile = AsyncMock()
    return scaler


@pytest.fixture
def app_with_overrides(stub_autoscaler, registry):
    from cluster_autoscaler.api import dependencies

    app.dependency_overrides[dependencies.get_autoscaler] = lambda: stub_autoscaler
    app.dependency_overrides[dependencies.get_metrics_registry] = lambda: registry
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides):
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def cluster_body():
    return {
        "name": "graph",
        "namespace": "data",
        "autoScaling": {
            "enabled": True,
            "primaries": {"minReplicas": 3, "maxReplicas": 7, "metrics": [{"type": "cpu", "target": "70%"}]},
        },
    }
