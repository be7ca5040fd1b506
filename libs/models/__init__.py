# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models and schemas for the AutoML training pipeline.
# =============================================================================

"""
Data models for the training pipeline.

This library provides:
- Operation records and provider handles/statuses
- The dataset record graph (datasets, labels, images, collaborators, models)
- Change feed events
- Configuration models
"""

__version__ = "0.1.0"

# Operation models
from .operation import (
    OperationHandle,
    OperationRecord,
    OperationStatus,
    OperationType,
    StageTransition,
    TransitionStatus,
)

# Dataset record graph
from .dataset import (
    DATASET_NAME_PATTERN,
    Collaborator,
    Dataset,
    Image,
    Label,
    ModelArtifact,
    validate_dataset_name,
)

# Change feed
from .change_event import ChangeEvent, ChangeType

# Configuration models
from .config import (
    AutoMLSettings,
    MinIOSettings,
    MongoSettings,
    NotificationSettings,
)

__all__ = [
    # Operation models
    "OperationHandle",
    "OperationRecord",
    "OperationStatus",
    "OperationType",
    "StageTransition",
    "TransitionStatus",
    # Dataset record graph
    "DATASET_NAME_PATTERN",
    "Collaborator",
    "Dataset",
    "Image",
    "Label",
    "ModelArtifact",
    "validate_dataset_name",
    # Change feed
    "ChangeEvent",
    "ChangeType",
    # Configuration models
    "AutoMLSettings",
    "MinIOSettings",
    "MongoSettings",
    "NotificationSettings",
]
