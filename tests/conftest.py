"""Shared pytest configuration for reminderbot tests."""

from typing import Any


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Tests wiring several components together")
