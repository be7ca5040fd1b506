# =============================================================================
# Cascade Ops - Record Deletion Side Effects
# =============================================================================
# One op per watched delete: datasets, labels, images and collaborators.
# Each is launched by the change event sensor with the delete event's id.
# =============================================================================

from dagster import OpExecutionContext, op

from ..lifecycle import (
    cascade_dataset_deletion,
    cascade_label_deletion,
    release_deleted_image,
    remove_collaborator,
)
from .common import EVENT_CONFIG_SCHEMA, load_change_event

__all__ = [
    "delete_dataset_cascade",
    "delete_label_cascade",
    "release_image",
    "remove_collaborator_email",
]


def _deleted_record(mongodb, event_id: str, collection: str):
    event = load_change_event(mongodb, event_id)
    if event.collection != collection or event.before is None:
        raise ValueError(
            f"Change event '{event_id}' is not a {collection} delete with a record image"
        )
    return event.document_key, event.before


def _delete_dataset(mongodb, minio, event_id: str, log) -> dict:
    """
    Core logic for the dataset cascade.

    This function is extracted for easier unit testing without Dagster context.
    """
    dataset_key, dataset = _deleted_record(mongodb, event_id, mongodb.DATASETS)
    report = cascade_dataset_deletion(mongodb, minio, dataset_key, dataset, log)
    if not report.ok:
        log.warning(f"Dataset {dataset_key} cascade finished with errors: {report.errors}")
    return report.to_dict()


def _delete_label(mongodb, event_id: str, log) -> int:
    label_key, _ = _deleted_record(mongodb, event_id, mongodb.LABELS)
    return cascade_label_deletion(mongodb, label_key, log)


def _release_image(mongodb, minio, event_id: str, log):
    _, image = _deleted_record(mongodb, event_id, mongodb.IMAGES)
    return release_deleted_image(mongodb, minio, image, log)


def _remove_collaborator(mongodb, event_id: str, log) -> bool:
    _, collaborator = _deleted_record(mongodb, event_id, mongodb.COLLABORATORS)
    return remove_collaborator(mongodb, collaborator, log)


@op(config_schema=EVENT_CONFIG_SCHEMA, required_resource_keys={"mongodb", "minio"})
def delete_dataset_cascade(context: OpExecutionContext) -> dict:
    """
    Remove collaborators, labels, images, models, operations and bucket
    objects of a deleted dataset.
    """
    return _delete_dataset(
        mongodb=context.resources.mongodb,
        minio=context.resources.minio,
        event_id=context.op_config["event_id"],
        log=context.log,
    )


@op(config_schema=EVENT_CONFIG_SCHEMA, required_resource_keys={"mongodb"})
def delete_label_cascade(context: OpExecutionContext) -> int:
    """Remove the images of a deleted label."""
    return _delete_label(
        mongodb=context.resources.mongodb,
        event_id=context.op_config["event_id"],
        log=context.log,
    )


@op(config_schema=EVENT_CONFIG_SCHEMA, required_resource_keys={"mongodb", "minio"})
def release_image(context: OpExecutionContext) -> None:
    """Decrement the label counter and delete the object of a deleted image."""
    _release_image(
        mongodb=context.resources.mongodb,
        minio=context.resources.minio,
        event_id=context.op_config["event_id"],
        log=context.log,
    )


@op(config_schema=EVENT_CONFIG_SCHEMA, required_resource_keys={"mongodb"})
def remove_collaborator_email(context: OpExecutionContext) -> bool:
    """Pull a deleted collaborator's email from its dataset."""
    return _remove_collaborator(
        mongodb=context.resources.mongodb,
        event_id=context.op_config["event_id"],
        log=context.log,
    )
