"""Training lifecycle jobs (op-based).

Each job runs a single op and is launched by change_event_sensor. The op
receives the triggering change event id through run config.
"""

from dagster import job

from ..ops import (
    advance_stage,
    delete_dataset_cascade,
    delete_label_cascade,
    release_image,
    remove_collaborator_email,
)


@job(
    name="advance_stage_job",
    description="Advances the training pipeline after an operation completes (IMPORT_DATA -> TRAIN_MODEL -> EXPORT_MODEL -> model record)",
)
def advance_stage_job():
    advance_stage()


@job(
    name="delete_dataset_job",
    description="Cascades a dataset deletion to collaborators, labels, images, models, operations and bucket objects",
)
def delete_dataset_job():
    delete_dataset_cascade()


@job(
    name="delete_label_job",
    description="Cascades a label deletion to its images",
)
def delete_label_job():
    delete_label_cascade()


@job(
    name="delete_image_job",
    description="Decrements the label counter and deletes the stored object of a deleted image",
)
def delete_image_job():
    release_image()


@job(
    name="remove_collaborator_job",
    description="Removes a deleted collaborator's email from its dataset",
)
def remove_collaborator_job():
    remove_collaborator_email()
