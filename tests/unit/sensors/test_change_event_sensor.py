"""
Unit tests for change_event_sensor.

The sensor only routes: it launches one run per routable change event and
marks every fetched event processed.
"""

import pytest
from unittest.mock import Mock

from dagster import RunRequest, SkipReason

from libs.models import ChangeEvent, ChangeType, OperationStatus
from services.dagster.automl_pipelines.sensors.change_event_sensor import (
    EVENT_ROUTES,
    build_run_request,
    change_event_sensor,
    route_for,
)


@pytest.fixture
def mock_sensor_context():
    context = Mock()
    context.cursor = None
    context.log = Mock()
    return context


def test_sensor_skips_when_feed_is_empty(mock_sensor_context, mongo_resource):
    results = list(change_event_sensor._raw_fn(mock_sensor_context, mongo_resource))

    assert len(results) == 1
    assert isinstance(results[0], SkipReason)


def test_sensor_routes_operation_completion(mock_sensor_context, mongo_resource, import_record):
    mongo_resource.insert_operation(import_record)
    mongo_resource.update_operation_status(import_record.name, OperationStatus(name=import_record.name, done=True))

    results = list(change_event_sensor._raw_fn(mock_sensor_context, mongo_resource))

    assert len(results) == 1
    rr = results[0]
    assert isinstance(rr, RunRequest)
    assert rr.job_name == "advance_stage_job"
    event_id = rr.tags["change_event_id"]
    assert rr.run_key == f"operations:update:{event_id}"
    assert rr.run_config == {"ops": {"advance_stage": {"config": {"event_id": event_id}}}}
    assert rr.tags["document_key"] == import_record.name

    # Processed events are not routed again
    assert mongo_resource.fetch_unprocessed_change_events() == []
    again = list(change_event_sensor._raw_fn(mock_sensor_context, mongo_resource))
    assert isinstance(again[0], SkipReason)


def test_sensor_routes_each_watched_delete(mock_sensor_context, mongo_resource):
    for collection in ("datasets", "labels", "images", "collaborators"):
        mongo_resource.insert_record(collection, {"name": "x", "parent_key": "p"}, key=f"{collection}-1")
        mongo_resource.delete_record(collection, f"{collection}-1")

    results = list(change_event_sensor._raw_fn(mock_sensor_context, mongo_resource))

    assert sorted(rr.job_name for rr in results) == [
        "delete_dataset_job",
        "delete_image_job",
        "delete_label_job",
        "remove_collaborator_job",
    ]


def test_sensor_marks_unroutable_events_processed(mock_sensor_context, mongo_resource):
    mongo_resource.record_change_event(
        ChangeEvent(collection="models", document_key="m1", event_type=ChangeType.INSERT, after={})
    )

    results = list(change_event_sensor._raw_fn(mock_sensor_context, mongo_resource))

    assert len(results) == 1
    assert isinstance(results[0], SkipReason)
    assert mongo_resource.fetch_unprocessed_change_events() == []


def test_sensor_skips_when_feed_unreadable(mock_sensor_context):
    mongodb = Mock()
    mongodb.fetch_unprocessed_change_events.side_effect = RuntimeError("connection refused")

    results = list(change_event_sensor._raw_fn(mock_sensor_context, mongodb))

    assert len(results) == 1
    assert "connection refused" in results[0].skip_message
    mock_sensor_context.log.error.assert_called_once()


def test_sensor_still_launches_when_marking_fails(mock_sensor_context):
    mongodb = Mock()
    mongodb.fetch_unprocessed_change_events.return_value = [
        ChangeEvent(event_id="evt-1", collection="labels", document_key="lbl1", event_type=ChangeType.DELETE)
    ]
    mongodb.mark_change_event_processed.side_effect = RuntimeError("write failed")

    results = list(change_event_sensor._raw_fn(mock_sensor_context, mongodb))

    assert [rr.run_key for rr in results] == ["labels:delete:evt-1"]
    mock_sensor_context.log.warning.assert_called_once()


def test_route_for_ignores_inserts_and_operation_deletes():
    assert route_for(ChangeEvent(collection="labels", document_key="k", event_type=ChangeType.INSERT)) is None
    assert route_for(ChangeEvent(collection="operations", document_key="k", event_type=ChangeType.DELETE)) is None
    assert len(EVENT_ROUTES) == 5


def test_build_run_request_is_keyed_by_event_id():
    event = ChangeEvent(event_id="evt-9", collection="images", document_key="img1", event_type=ChangeType.DELETE)

    rr = build_run_request(event, route_for(event))

    assert rr.run_key == "images:delete:evt-9"
    assert rr.run_config["ops"]["release_image"]["config"]["event_id"] == "evt-9"
