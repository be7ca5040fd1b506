"""Training lifecycle core - polling, stage advancement, export and cascades."""

from .cascade import (
    CascadeReport,
    cascade_dataset_deletion,
    cascade_label_deletion,
    delete_query_batch,
    release_deleted_image,
    remove_collaborator,
)
from .coordinator import Failed, NextStage, Terminal, handle_operation_update, is_completion
from .export import finalize_export, resolve_latest_export
from .notify import notify_owner
from .poller import PollSummary, poll_operations

__all__ = [
    "CascadeReport",
    "cascade_dataset_deletion",
    "cascade_label_deletion",
    "delete_query_batch",
    "release_deleted_image",
    "remove_collaborator",
    "Failed",
    "NextStage",
    "Terminal",
    "handle_operation_update",
    "is_completion",
    "finalize_export",
    "resolve_latest_export",
    "notify_owner",
    "PollSummary",
    "poll_operations",
]
