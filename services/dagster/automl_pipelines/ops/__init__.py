"""Dagster Ops - Reusable Computation Units."""

from .stage_ops import advance_stage
from .cascade_ops import (
    delete_dataset_cascade,
    delete_label_cascade,
    release_image,
    remove_collaborator_email,
)

__all__ = [
    "advance_stage",
    "delete_dataset_cascade",
    "delete_label_cascade",
    "release_image",
    "remove_collaborator_email",
]
