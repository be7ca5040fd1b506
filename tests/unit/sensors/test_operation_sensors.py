"""
Unit tests for the operation progress sensors.
"""

import pytest
from unittest.mock import Mock

from dagster import SkipReason

from libs.models import OperationType
from services.dagster.automl_pipelines.lifecycle import PollSummary
from services.dagster.automl_pipelines.sensors.operation_sensors import (
    POLL_INTERVALS,
    export_model_progress_sensor,
    import_data_progress_sensor,
    train_model_progress_sensor,
)


@pytest.fixture
def mock_sensor_context():
    context = Mock()
    context.cursor = None
    context.log = Mock()
    return context


@pytest.fixture
def gateway():
    return Mock()


@pytest.fixture
def automl(gateway):
    automl = Mock()
    automl.get_gateway.return_value = gateway
    return automl


def test_sensor_names_and_intervals():
    assert import_data_progress_sensor.name == "import_data_progress_sensor"
    assert export_model_progress_sensor.name == "export_model_progress_sensor"
    assert train_model_progress_sensor.name == "train_model_progress_sensor"

    assert import_data_progress_sensor.minimum_interval_seconds == 300
    assert export_model_progress_sensor.minimum_interval_seconds == 600
    assert train_model_progress_sensor.minimum_interval_seconds == 900
    assert set(POLL_INTERVALS) == set(OperationType)


def test_sensor_skips_without_pending_operations(mock_sensor_context, automl, gateway):
    mongodb = Mock()
    mongodb.find_pending_operations.return_value = []
    mongodb.announce_pending_completions.return_value = []

    results = list(import_data_progress_sensor._raw_fn(mock_sensor_context, mongodb, automl))

    assert len(results) == 1
    assert results[0].skip_message == "No pending operations found for type IMPORT_DATA"
    mongodb.find_pending_operations.assert_called_once_with(OperationType.IMPORT_DATA)
    gateway.close.assert_called_once()


def test_sensor_reports_poll_summary(mock_sensor_context, automl, gateway, monkeypatch):
    summary = PollSummary(kind=OperationType.TRAIN_MODEL, examined=2, completed=["op-1"])
    poll = Mock(return_value=summary)
    monkeypatch.setattr(
        "services.dagster.automl_pipelines.sensors.operation_sensors.poll_operations", poll
    )

    results = list(train_model_progress_sensor._raw_fn(mock_sensor_context, Mock(), automl))

    assert isinstance(results[0], SkipReason)
    assert results[0].skip_message == "2 operations updated: TRAIN_MODEL (1 completed, 0 errors)"
    assert poll.call_args.args[2] == OperationType.TRAIN_MODEL


def test_sensor_survives_poll_failure(mock_sensor_context, automl, gateway):
    mongodb = Mock()
    mongodb.announce_pending_completions.return_value = []
    mongodb.find_pending_operations.side_effect = RuntimeError("mongo down")

    results = list(export_model_progress_sensor._raw_fn(mock_sensor_context, mongodb, automl))

    assert "mongo down" in results[0].skip_message
    mock_sensor_context.log.error.assert_called_once()
    gateway.close.assert_called_once()


def test_sensor_survives_gateway_creation_failure(mock_sensor_context):
    automl = Mock()
    automl.get_gateway.side_effect = RuntimeError("bad credentials")

    results = list(import_data_progress_sensor._raw_fn(mock_sensor_context, Mock(), automl))

    assert "bad credentials" in results[0].skip_message
