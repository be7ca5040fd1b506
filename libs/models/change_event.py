# =============================================================================
# Change Event Model
# =============================================================================
# Change feed entries written by the ledger whenever a watched record is
# updated or deleted. The change event sensor turns them into Dagster runs.
# =============================================================================

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

__all__ = ["ChangeEvent", "ChangeType"]


class ChangeType(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChangeEvent(BaseModel):
    """
    A single change to a record.

    Attributes:
        event_id: MongoDB ObjectId of the event (set when loaded)
        collection: Collection the changed record lives in
        document_key: Store key of the changed record
        event_type: Kind of change
        before: Record image before the change (None for inserts)
        after: Record image after the change (None for deletes)
        processed: Whether the change has been routed
        created_at: When the change was recorded
    """

    event_id: Optional[str] = None
    collection: str
    document_key: str
    event_type: ChangeType
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    processed: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> dict[str, Any]:
        document = self.model_dump(mode="python", exclude={"event_id"})
        document["event_type"] = self.event_type.value
        return document
