"""
Shared pytest fixtures.

Provides reusable record fixtures and an in-memory MongoDBResource backed by
mongomock.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import mongomock
import pytest

from libs.models import (
    Collaborator,
    Dataset,
    Image,
    Label,
    OperationRecord,
    OperationType,
)
from services.dagster.automl_pipelines.resources import MinIOResource, MongoDBResource


# =============================================================================
# MongoDB Fixtures
# =============================================================================

@pytest.fixture
def mongomock_client():
    """In-memory MongoDB client for tests."""
    return mongomock.MongoClient()


@pytest.fixture
def mongo_resource(monkeypatch, mongomock_client):
    """MongoDBResource configured to use the mongomock client."""
    monkeypatch.setattr(
        "services.dagster.automl_pipelines.resources.mongodb_resource.MongoClient",
        lambda *args, **kwargs: mongomock_client,
    )
    return MongoDBResource(connection_string="mongodb://localhost:27017")


@pytest.fixture
def mongo_db(mongo_resource, mongomock_client):
    """Raw database handle behind mongo_resource, for assertions."""
    return mongomock_client[mongo_resource.database]


@pytest.fixture
def mock_storage():
    """MinIOResource stand-in with the AutoML bucket name set."""
    storage = Mock(spec=MinIOResource)
    storage.bucket = "automl-vcm"
    storage.list_keys.return_value = []
    storage.remove_prefix.return_value = 0
    storage.remove_object.return_value = True
    return storage


# =============================================================================
# Record Fixtures
# =============================================================================

@pytest.fixture
def dataset():
    return Dataset(name="flowers", automlId="ICN123", token="device-token")


@pytest.fixture
def label():
    return Label(name="rose", parent_key="ds1")


@pytest.fixture
def image():
    return Image(parent_key="lbl1", uploadPath="flowers/rose/1.jpg", gcsURI="gs://automl-vcm/flowers/rose/1.jpg")


@pytest.fixture
def collaborator():
    return Collaborator(email="alice@example.com", parent_key="ds1")


@pytest.fixture
def import_record():
    return OperationRecord(
        name="projects/p/locations/us-central1/operations/ICN-import-1",
        type=OperationType.IMPORT_DATA,
        dataset_id="ICN123",
        training_budget=2,
        last_updated=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def train_record():
    return OperationRecord(
        name="projects/p/locations/us-central1/operations/ICN-train-1",
        type=OperationType.TRAIN_MODEL,
        dataset_id="ICN123",
    )


@pytest.fixture
def export_record():
    return OperationRecord(
        name="projects/p/locations/us-central1/operations/ICN-export-1",
        type=OperationType.EXPORT_MODEL,
        dataset_id="ICN123",
    )
