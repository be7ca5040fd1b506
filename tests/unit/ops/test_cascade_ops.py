# =============================================================================
# Unit Tests: Cascade Ops
# =============================================================================

import pytest
from unittest.mock import Mock
from dagster import build_op_context

from libs.models import Image, Label
from services.dagster.automl_pipelines.ops.cascade_ops import (
    _delete_dataset,
    _delete_label,
    _release_image,
    _remove_collaborator,
    delete_label_cascade,
)


def _last_event_id(mongodb):
    return mongodb.fetch_unprocessed_change_events()[-1].event_id


# =============================================================================
# Test: Core Logic
# =============================================================================

def test_delete_dataset_runs_cascade(mongo_resource, mock_storage, dataset, label):
    mongo_resource.insert_dataset(dataset, key="ds1")
    mongo_resource.insert_label(label, key="lbl1")
    mongo_resource.delete_record("datasets", "ds1")

    report = _delete_dataset(mongo_resource, mock_storage, _last_event_id(mongo_resource), Mock())

    assert report["errors"] == {}
    assert report["deleted"]["labels"] == 1
    mock_storage.remove_prefix.assert_called_once_with("flowers/")


def test_delete_dataset_logs_step_errors(mongo_resource, mock_storage, dataset):
    mongo_resource.insert_dataset(dataset, key="ds1")
    mongo_resource.delete_record("datasets", "ds1")
    mock_storage.remove_prefix.side_effect = RuntimeError("bucket gone")
    log = Mock()

    report = _delete_dataset(mongo_resource, mock_storage, _last_event_id(mongo_resource), log)

    assert report["errors"] == {"objects": "bucket gone"}
    log.warning.assert_called_once()


def test_delete_dataset_rejects_event_of_other_collection(mongo_resource, mock_storage, label):
    mongo_resource.insert_label(label, key="lbl1")
    mongo_resource.delete_record("labels", "lbl1")

    with pytest.raises(ValueError, match="not a datasets delete"):
        _delete_dataset(mongo_resource, mock_storage, _last_event_id(mongo_resource), Mock())


def test_delete_label_removes_images(mongo_resource, label):
    mongo_resource.insert_label(label, key="lbl1")
    for i in range(3):
        mongo_resource.add_image(Image(parent_key="lbl1", uploadPath=f"flowers/rose/{i}.jpg"))
    mongo_resource.delete_record("labels", "lbl1")

    assert _delete_label(mongo_resource, _last_event_id(mongo_resource), Mock()) == 3


def test_release_image_decrements_counter(mongo_resource, mock_storage, image):
    mongo_resource.insert_label(Label(name="rose", parent_key="ds1"), key="lbl1")
    mongo_resource.add_image(image, key="img1")
    mongo_resource.delete_record("images", "img1")

    assert _release_image(mongo_resource, mock_storage, _last_event_id(mongo_resource), Mock()) == 0
    mock_storage.remove_object.assert_called_once_with("flowers/rose/1.jpg")


def test_remove_collaborator_pulls_email(mongo_resource, dataset, collaborator):
    mongo_resource.insert_dataset(dataset, key="ds1")
    mongo_resource.add_collaborator(collaborator, key="col1")
    mongo_resource.delete_record("collaborators", "col1")

    assert _remove_collaborator(mongo_resource, _last_event_id(mongo_resource), Mock()) is True
    assert mongo_resource.get_dataset("ds1").collaborators == []


# =============================================================================
# Test: Op with Dagster context
# =============================================================================

def test_delete_label_cascade_op(mongo_resource, label):
    mongo_resource.insert_label(label, key="lbl1")
    mongo_resource.add_image(Image(parent_key="lbl1", uploadPath="flowers/rose/0.jpg"))
    mongo_resource.delete_record("labels", "lbl1")

    context = build_op_context(
        resources={"mongodb": mongo_resource},
        op_config={"event_id": _last_event_id(mongo_resource)},
    )

    assert delete_label_cascade(context) == 1
