# =============================================================================
# Unit Tests: Stage Op
# =============================================================================

import pytest
from unittest.mock import Mock
from dagster import Failure, build_op_context

from libs.errors import ProviderError
from libs.models import ChangeEvent, ChangeType, OperationHandle, OperationStatus, OperationType
from services.dagster.automl_pipelines.ops.stage_ops import _advance_stage, advance_stage


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def gateway():
    gateway = Mock()
    gateway.train.return_value = OperationHandle(name="op-train-2")
    return gateway


@pytest.fixture
def automl(gateway):
    automl = Mock()
    automl.get_gateway.return_value = gateway
    return automl


@pytest.fixture
def notifications():
    notifications = Mock()
    notifications.get_notifier.return_value = Mock()
    return notifications


def _completion_event(mongodb, record):
    mongodb.insert_operation(record)
    mongodb.update_operation_status(record.name, OperationStatus(name=record.name, done=True))
    return mongodb.fetch_unprocessed_change_events()[0].event_id


# =============================================================================
# Test: Core Logic (_advance_stage)
# =============================================================================

def test_advance_stage_starts_training(mongo_resource, automl, gateway, notifications, mock_storage, import_record):
    event_id = _completion_event(mongo_resource, import_record)

    result = _advance_stage(
        mongodb=mongo_resource,
        automl=automl,
        minio=mock_storage,
        notifications=notifications,
        event_id=event_id,
        log=Mock(),
    )

    assert result.operation_type == OperationType.TRAIN_MODEL
    assert result.operation_name == "op-train-2"
    gateway.train.assert_called_once_with("ICN123", train_budget=2)
    assert mongo_resource.get_operation("op-train-2").type is OperationType.TRAIN_MODEL

    # Clients are closed once the stage is handled
    gateway.close.assert_called_once()
    notifications.get_notifier.return_value.close.assert_called_once()


def test_advance_stage_unknown_event(mongo_resource, automl, notifications, mock_storage):
    with pytest.raises(ValueError, match="not found"):
        _advance_stage(mongo_resource, automl, mock_storage, notifications, "0" * 24, Mock())


def test_advance_stage_rejects_non_operation_event(mongo_resource, automl, notifications, mock_storage):
    mongo_resource.insert_record("labels", {"name": "rose", "parent_key": "ds1"}, key="lbl1")
    mongo_resource.delete_record("labels", "lbl1")
    event_id = mongo_resource.fetch_unprocessed_change_events()[0].event_id

    with pytest.raises(ValueError, match="not operations"):
        _advance_stage(mongo_resource, automl, mock_storage, notifications, event_id, Mock())
    automl.get_gateway.assert_not_called()


# =============================================================================
# Test: Op with Dagster context
# =============================================================================

def _op_context(mongodb, automl, notifications, storage, event_id="evt-1"):
    return build_op_context(
        resources={
            "mongodb": mongodb,
            "automl": automl,
            "minio": storage,
            "notifier": notifications,
        },
        op_config={"event_id": event_id},
    )


def _mock_ledger(before):
    mongodb = Mock()
    mongodb.OPERATIONS = "operations"
    mongodb.get_change_event.return_value = ChangeEvent(
        event_id="evt-1",
        collection="operations",
        document_key=before["name"],
        event_type=ChangeType.UPDATE,
        before=before,
        after={**before, "done": True},
    )
    mongodb.claim_stage_transition.return_value = True
    return mongodb


def test_advance_stage_op_returns_next_stage_summary(automl, notifications, import_record):
    mongodb = _mock_ledger(import_record.to_document())
    storage = Mock()
    storage.bucket = "automl-vcm"

    result = advance_stage(_op_context(mongodb, automl, notifications, storage))

    assert result == {
        "result": "next_stage",
        "operation_type": "TRAIN_MODEL",
        "operation_name": "op-train-2",
        "dataset_id": "ICN123",
    }
    mongodb.insert_operation.assert_called_once()


def test_advance_stage_op_fails_run_on_ambiguous_export(automl, notifications, export_record):
    mongodb = _mock_ledger(export_record.to_document())
    storage = Mock()
    storage.bucket = "automl-vcm"
    folder = "models/on-device/ICN123/2019-03-19_21-30-02-757_tflite"
    storage.list_keys.return_value = [f"{folder}/a/model.tflite", f"{folder}/b/model.tflite", f"{folder}/dict.txt"]

    with pytest.raises(Failure) as exc_info:
        advance_stage(_op_context(mongodb, automl, notifications, storage))

    assert "Stage advancement failed" in exc_info.value.description
    mongodb.insert_model.assert_not_called()
    mongodb.release_stage_transition.assert_called_once_with(export_record.name)


def test_advance_stage_op_returns_retryable_failure(automl, gateway, notifications, import_record):
    gateway.train.side_effect = ProviderError("quota exceeded", status_code=429)
    mongodb = _mock_ledger(import_record.to_document())
    storage = Mock()
    storage.bucket = "automl-vcm"

    result = advance_stage(_op_context(mongodb, automl, notifications, storage))

    assert result == {"result": "failed", "reason": "quota exceeded"}


def test_advance_stage_op_already_advanced(automl, gateway, notifications, import_record):
    mongodb = _mock_ledger(import_record.to_document())
    mongodb.claim_stage_transition.return_value = False

    result = advance_stage(_op_context(mongodb, automl, notifications, Mock()))

    assert result == {"result": "terminal", "reason": "already advanced"}
    gateway.train.assert_not_called()
