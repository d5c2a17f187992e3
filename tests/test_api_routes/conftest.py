"""
Fixtures for route tests: the full application with a mocked service container.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from flowtask.app.factory import create_app


@pytest.fixture
def mock_services(settings):
    """Create mock services."""
    services = MagicMock()
    services.settings = settings
    services.task_service.get_task_by_number = AsyncMock()
    services.task_service.search_tasks = AsyncMock()
    services.aclose = AsyncMock()
    return services


@pytest.fixture
def app(mock_services, settings):
    """Create the application with the mocked container injected."""
    return create_app(settings=settings, services=mock_services)


@pytest.fixture
def client(app):
    """Create a test client."""
    return TestClient(app)
