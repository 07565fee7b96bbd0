"""Pytest configuration and shared fixtures."""

import os
from typing import Any

import pytest

# Set test environment before importing settings
os.environ["ENV"] = "development"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["LOG_FORMAT"] = "text"


@pytest.fixture
def sample_tunnel_data() -> dict[str, Any]:
    """Sample tunnel snapshot for testing."""
    return {
        "local_host": "127.0.0.1",
        "local_port": 9091,
        "remote_port": 8080,
        "target_service": "eventing-publisher-proxy",
        "target_namespace": "kyma-system",
        "pod_name": "eventing-publisher-proxy-7d9c8b6f4-x2k8p",
        "state": "OPEN",
    }


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Remove bridge settings from the environment for the duration of a test."""
    for key in list(os.environ):
        if key.startswith(("TUNNEL_", "RELAY_")) or key in ("PORT", "HOST", "DEFAULT_NAMESPACE"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (require a reachable cluster)"
    )
