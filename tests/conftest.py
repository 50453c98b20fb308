"""
Global pytest configuration and fixtures for the POS Sync API test suite.
"""

import os
from typing import Generator
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

# Set test environment variables
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-32-chars"

from possync.domains.integrations.dependencies import (  # noqa: E402
    get_integration_service,
)
from possync.domains.integrations.registry import IntegrationRegistry  # noqa: E402
from possync.domains.integrations.service import IntegrationService  # noqa: E402
from possync.main import app  # noqa: E402

# Import fixtures from fixture modules
from tests.fixtures.integration_fixtures import *  # noqa: F403, F401, E402


@pytest.fixture
def mock_factory() -> Mock:
    """Mock IntegrationFactory so no provider client touches the network."""
    return Mock()


@pytest.fixture
def integration_service(
    registry: IntegrationRegistry, mock_factory: Mock
) -> IntegrationService:
    return IntegrationService(registry, factory=mock_factory)


@pytest.fixture
def client(
    integration_service: IntegrationService,
) -> Generator[TestClient, None, None]:
    """FastAPI test client backed by a registry in a temporary directory."""
    app.dependency_overrides[get_integration_service] = lambda: integration_service
    yield TestClient(app)
    app.dependency_overrides.clear()
