# =============================================================================
# Dataset Models Module
# =============================================================================
# Defines the record graph hanging off a dataset:
# - Dataset: User-facing grouping of training data
# - Label: Named bucket of samples (parent_key -> dataset key)
# - Image: One training sample (parent_key -> label key)
# - Collaborator: Grants a dataset to a non-owner (parent_key -> dataset key)
# - ModelArtifact: Finalized export (dataset_id -> Dataset.automl_id)
# =============================================================================

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "DATASET_NAME_PATTERN",
    "validate_dataset_name",
    "Dataset",
    "Label",
    "Image",
    "Collaborator",
    "ModelArtifact",
]


# Dataset names become storage prefixes, so only ASCII letters, digits and
# underscores are allowed.
DATASET_NAME_PATTERN = re.compile(r"[a-zA-Z_0-9]+")


def validate_dataset_name(value: str) -> str:
    """
    Validate a dataset display name.

    Raises:
        ValueError: If the name contains characters outside [a-zA-Z_0-9]
    """
    if not isinstance(value, str) or not DATASET_NAME_PATTERN.fullmatch(value):
        raise ValueError(
            "The displayName contains a not allowed character, the only allowed "
            "ones are ASCII Latin letters A-Z and a-z, an underscore (_), and "
            "ASCII digits 0-9"
        )
    return value


class _Record(BaseModel):
    """Base for records stored with their original camelCase field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="python", by_alias=True)


class Dataset(_Record):
    """
    Dataset document.

    `automl_id` is the join key for operations and models; `name` is the join
    key for storage paths. The two are never unified.

    Attributes:
        name: Display name, also the storage prefix
        automl_id: Provider-assigned dataset ID (stored as automlId)
        collaborators: Emails of non-owners with access
        token: Owner device token used for push notifications
        owner: Owner identity, if known
    """

    name: str = Field(..., description="Display name and storage prefix")
    automl_id: Optional[str] = Field(None, alias="automlId")
    collaborators: list[str] = Field(default_factory=list)
    token: Optional[str] = Field(None, description="Owner device token")
    owner: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _safe_name(cls, value: str) -> str:
        return validate_dataset_name(value)

    @field_validator("collaborators")
    @classmethod
    def _unique_emails(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(email.strip() for email in value if email and email.strip()))


class Label(_Record):
    """Label document; total_images mirrors the number of live images."""

    name: str
    parent_key: str = Field(..., description="Store key of the owning dataset")
    total_images: int = Field(0, ge=0)


class Image(_Record):
    """Image document produced by video-to-image conversion."""

    parent_key: str = Field(..., description="Store key of the owning label")
    upload_path: Optional[str] = Field(None, alias="uploadPath")
    gcs_uri: Optional[str] = Field(None, alias="gcsURI")
    type: str = "TRAIN"
    filename: Optional[str] = None
    uploader: Optional[str] = None
    dataset_parent_key: Optional[str] = None


class Collaborator(_Record):
    """Collaborator document."""

    email: str
    parent_key: str = Field(..., description="Store key of the shared dataset")

    @field_validator("email")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("email cannot be empty")
        return value


class ModelArtifact(_Record):
    """
    Model document written once an export has been resolved.

    Immutable after creation; removed only by the dataset cascade.
    """

    dataset_id: str
    model: str = Field(..., description="Object key of the model weights")
    label: str = Field(..., description="Object key of the label map")
    generated_at: datetime
