"""Test configuration."""

from pathlib import Path
from typing import List

import pytest
from pytest import Config

from gymfinder.core.logging import configure_logging

fixture = pytest.fixture


@fixture(scope="session")
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


pytest_plugins: List[str] = [
    "tests.fixtures.geocoding",
    "tests.fixtures.dataset",
]


@fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep provider credentials and cache URLs from leaking into tests."""
    for name in ("GOOGLE_MAPS_API_KEY", "REDIS_URL", "METRICS_TEXTFILE"):
        monkeypatch.delenv(name, raising=False)


def pytest_configure(config: Config) -> None:
    """Configure pytest.

    Args:
        config: Pytest configuration object
    """
    # Configure logging for test environment
    configure_logging(testing=True)
    config.addinivalue_line("markers", "integration: mark test as an integration test")
