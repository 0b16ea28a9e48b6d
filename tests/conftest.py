"""Pytest configuration and fixtures."""

from collections.abc import Generator

import pytest
from flask import Flask

from obsidian_metrics import create_app
from obsidian_metrics.config import Settings
from obsidian_metrics.metrics.registry import MetricsRegistry
from obsidian_metrics.services.container import ServiceContainer
from tests.testing_utils import ManualClock


def _build_test_settings() -> Settings:
    """Construct base Settings object for tests."""
    return Settings(
        flask_env="testing",
        debug=True,
        host="127.0.0.1",
        port=9090,
        metrics_path="/metrics",
        cors_origins=["*"],
        graceful_shutdown_timeout=5,
        metrics_prefix="obsidian_",
        metrics_default_labels={},
        metrics_update_interval=60,
        enable_builtin_metrics=True,
        vault_path=None,
    )


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with built-in metrics and no vault."""
    return _build_test_settings()


@pytest.fixture
def app(test_settings: Settings) -> Generator[Flask, None, None]:
    """Create Flask app for testing."""
    app = create_app(test_settings)

    try:
        yield app
    finally:
        app.container.lifecycle_coordinator().shutdown()


@pytest.fixture
def client(app: Flask):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def container(app: Flask) -> ServiceContainer:
    """Access to the DI container for testing."""
    return app.container


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def registry(clock: ManualClock) -> MetricsRegistry:
    """Standalone registry with a test prefix and a manual clock."""
    return MetricsRegistry(prefix="test_", clock=clock)
