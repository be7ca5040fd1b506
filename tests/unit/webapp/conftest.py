# =============================================================================
# Webapp test fixtures
# =============================================================================

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services import get_automl_gateway, get_ledger, get_storage


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def gateway():
    """AutoMLGateway stand-in."""
    return Mock()


@pytest.fixture
def patched_gateway(client, gateway):
    app.dependency_overrides[get_automl_gateway] = lambda: gateway
    return gateway


@pytest.fixture
def patched_ledger(client, mongo_resource):
    app.dependency_overrides[get_ledger] = lambda: mongo_resource
    return mongo_resource


@pytest.fixture
def patched_storage(client, mock_storage):
    app.dependency_overrides[get_storage] = lambda: mock_storage
    return mock_storage
