# =============================================================================
# Operation Models Module
# =============================================================================
# Defines models for long-running provider operations:
# - OperationType: Pipeline stage tag (IMPORT_DATA -> TRAIN_MODEL -> EXPORT_MODEL)
# - OperationRecord: Persisted contract (what gets stored in MongoDB)
# - OperationHandle: Opaque handle returned by the provider on submission
# - OperationStatus: Result of a provider status query
# - StageTransition: Exactly-once claim for advancing a completed stage
# =============================================================================

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "OperationType",
    "OperationRecord",
    "OperationHandle",
    "OperationStatus",
    "StageTransition",
    "TransitionStatus",
]


class OperationType(str, Enum):
    """Pipeline stage represented by an operation record."""

    IMPORT_DATA = "IMPORT_DATA"
    TRAIN_MODEL = "TRAIN_MODEL"
    EXPORT_MODEL = "EXPORT_MODEL"

    @property
    def next_stage(self) -> Optional["OperationType"]:
        """Stage that follows this one, or None for the terminal stage."""
        return _NEXT_STAGE[self]

    @classmethod
    def parse(cls, value: str | None) -> "OperationType":
        """
        Parse an operation type from user input.

        Raises:
            ValueError: If value is not one of the known operation types
        """
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ValueError(f"type should be one of {allowed}") from None


_NEXT_STAGE: dict[OperationType, Optional[OperationType]] = {
    OperationType.IMPORT_DATA: OperationType.TRAIN_MODEL,
    OperationType.TRAIN_MODEL: OperationType.EXPORT_MODEL,
    OperationType.EXPORT_MODEL: None,
}


class OperationRecord(BaseModel):
    """
    Operation document model for MongoDB tracking.

    One record exists per submitted provider operation. Records are created
    with done=False by whichever component initiated the stage, and only the
    poller flips done to True afterwards.

    Attributes:
        name: Opaque provider handle used to poll status
        type: Pipeline stage this operation represents
        dataset_id: Provider-assigned dataset ID (joins with Dataset.automl_id)
        done: Completion flag, only ever transitions False -> True
        deployed: Deployment bookkeeping flag (not acted on by the pipeline)
        last_updated: Timestamp of the last write by the poller
        training_budget: Optional train budget carried from import to training
    """

    model_config = ConfigDict(use_enum_values=False)

    name: str = Field(..., min_length=1, description="Provider operation handle")
    type: OperationType = Field(..., description="Pipeline stage")
    dataset_id: str = Field(..., min_length=1, description="Provider dataset ID")
    done: bool = Field(False, description="Whether the provider reports completion")
    deployed: bool = Field(False, description="Deployment bookkeeping flag")
    last_updated: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Timestamp of the last status write",
    )
    training_budget: Optional[int] = Field(
        None, ge=1, description="Train budget for the training stage"
    )

    @field_validator("done", "deployed", mode="before")
    @classmethod
    def _absent_is_false(cls, value: Any) -> bool:
        # A missing flag must never be read as True
        return bool(value) if value is not None else False

    def to_document(self) -> dict[str, Any]:
        """Serialize for MongoDB, keeping datetimes native and omitting unset budgets."""
        document = self.model_dump(mode="python")
        document["type"] = self.type.value
        if self.training_budget is None:
            document.pop("training_budget")
        return document


class OperationHandle(BaseModel):
    """Opaque handle returned by the provider when an operation is submitted."""

    name: str = Field(..., min_length=1, description="Path-like provider handle")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "OperationHandle":
        """Build a handle from a provider operation payload."""
        return cls(name=payload.get("name", ""), metadata=payload.get("metadata") or {})


class OperationStatus(BaseModel):
    """
    Status of a provider operation.

    The provider omits `done` while an operation is still running, so the
    field defaults to False; a not-done status is a normal outcome.
    """

    name: str
    done: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    error: Optional[dict[str, Any]] = None

    @field_validator("done", mode="before")
    @classmethod
    def _absent_is_false(cls, value: Any) -> bool:
        return bool(value) if value is not None else False

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "OperationStatus":
        return cls(
            name=payload.get("name", ""),
            done=payload.get("done"),
            metadata=payload.get("metadata") or {},
            error=payload.get("error"),
        )


class TransitionStatus(str, Enum):
    """State of a stage transition claim."""

    CLAIMED = "claimed"
    ADVANCED = "advanced"


class StageTransition(BaseModel):
    """
    Claim recorded before a completed operation advances the pipeline.

    Keyed by the source operation's handle so a re-delivered completion
    observes the claim and does not submit the next stage twice.
    """

    source_operation: str = Field(..., description="Handle of the completed operation")
    dataset_id: str
    next_type: Optional[OperationType] = None
    status: TransitionStatus = TransitionStatus.CLAIMED
    next_operation: Optional[str] = None
    claimed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> dict[str, Any]:
        document = self.model_dump(mode="python", exclude={"source_operation"})
        document["_id"] = self.source_operation
        document["status"] = self.status.value
        document["next_type"] = self.next_type.value if self.next_type else None
        return document
