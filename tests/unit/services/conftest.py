"""Pytest configuration and fixtures for service layer tests."""

import pytest

from schemalog.core.config import Config
from schemalog.services import ServiceContainer


@pytest.fixture
def container(config: Config) -> ServiceContainer:
    """Provide a ServiceContainer instance (not connected)."""
    return ServiceContainer(config)


@pytest.fixture
def connected_container(config: Config) -> ServiceContainer:
    """Provide a connected ServiceContainer instance."""
    container = ServiceContainer(config)
    container.connect()
    yield container
    container.close()
