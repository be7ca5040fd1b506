"""Dagster Jobs - Executable Workflows."""

from .lifecycle_jobs import (
    advance_stage_job,
    delete_dataset_job,
    delete_image_job,
    delete_label_job,
    remove_collaborator_job,
)

__all__ = [
    "advance_stage_job",
    "delete_dataset_job",
    "delete_image_job",
    "delete_label_job",
    "remove_collaborator_job",
]
