"""MongoDB Resource - Training pipeline record ledger."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from functools import cached_property
from typing import Any, ClassVar, Dict

from bson import ObjectId
from bson.errors import InvalidId
from dagster import ConfigurableResource
from pydantic import Field
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from libs.models import (
    ChangeEvent,
    ChangeType,
    Collaborator,
    Dataset,
    Image,
    Label,
    ModelArtifact,
    OperationRecord,
    OperationStatus,
    OperationType,
    StageTransition,
    TransitionStatus,
)

__all__ = ["MongoDBResource"]


class MongoDBResource(ConfigurableResource):
    """
    Dagster resource for the training pipeline ledger.

    Holds the six record collections (datasets, labels, images, models,
    operations, collaborators) plus the stage transition claims and the
    change feed. Every write that the lifecycle reacts to (an operation
    completing, a watched record being deleted) is mirrored into
    `change_events` so sensors can turn it into a run.
    """

    connection_string: str = Field(..., description="MongoDB connection URI")
    database: str = Field("automl_training", description="MongoDB database name")

    DATASETS: ClassVar[str] = "datasets"
    LABELS: ClassVar[str] = "labels"
    IMAGES: ClassVar[str] = "images"
    MODELS: ClassVar[str] = "models"
    OPERATIONS: ClassVar[str] = "operations"
    COLLABORATORS: ClassVar[str] = "collaborators"
    STAGE_TRANSITIONS: ClassVar[str] = "stage_transitions"
    CHANGE_EVENTS: ClassVar[str] = "change_events"

    # Deletes in these collections cascade, so they enter the change feed
    WATCHED_DELETES: ClassVar[frozenset[str]] = frozenset(
        {"datasets", "labels", "images", "collaborators"}
    )

    COUNTER_MAX_ATTEMPTS: ClassVar[int] = 10

    # Set with the done flip, cleared once its change event is stored
    COMPLETION_PENDING: ClassVar[str] = "completion_pending"

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(self.connection_string)

    def _get_db(self) -> Database:
        return self._client[self.database]

    def _get_collection(self, name: str) -> Collection:
        return self._get_db()[name]

    @staticmethod
    def _strip_object_id(doc: Dict) -> Dict:
        stripped = dict(doc)
        stripped.pop("_id", None)
        return stripped

    @staticmethod
    def _snapshot(doc: Dict | None) -> Dict | None:
        """Record image for the change feed, with a string store key."""
        if doc is None:
            return None
        snapshot = dict(doc)
        if "_id" in snapshot:
            snapshot["_id"] = str(snapshot["_id"])
        return snapshot

    @staticmethod
    def _new_key() -> str:
        return uuid.uuid4().hex

    # ------------------------------------------------------------------
    # Generic record operations
    # ------------------------------------------------------------------

    def insert_record(
        self, collection: str, document: Dict[str, Any], key: str | None = None
    ) -> str:
        """
        Insert a record under a string store key and return the key.
        """
        key = key or self._new_key()
        self._get_collection(collection).insert_one({**document, "_id": key})
        return key

    def get_record(self, collection: str, key: str) -> Dict | None:
        """
        Load a record by store key. The returned document keeps `_id`.
        """
        return self._get_collection(collection).find_one({"_id": key})

    def find_records(
        self, collection: str, query: Dict[str, Any], limit: int = 0
    ) -> list[Dict]:
        return list(self._get_collection(collection).find(query, limit=limit))

    def count_records(self, collection: str, query: Dict[str, Any]) -> int:
        return self._get_collection(collection).count_documents(query)

    def delete_record(self, collection: str, key: str) -> Dict | None:
        """
        Delete one record by store key.

        Deletes in watched collections record a `delete` change event with the
        removed document as the before image.

        Returns:
            The deleted document, or None if nothing matched
        """
        deleted = self._get_collection(collection).find_one_and_delete({"_id": key})
        if deleted is not None and collection in self.WATCHED_DELETES:
            self.record_change_event(
                ChangeEvent(
                    collection=collection,
                    document_key=str(deleted["_id"]),
                    event_type=ChangeType.DELETE,
                    before=self._snapshot(deleted),
                )
            )
        return deleted

    def delete_batch(
        self, collection: str, query: Dict[str, Any], batch_size: int = 100
    ) -> int:
        """
        Delete up to `batch_size` records matching `query` in one call.

        Watched deletes enter the change feed exactly as single deletes do.

        Returns:
            Number of records deleted (0 when nothing matched)
        """
        coll = self._get_collection(collection)
        documents = list(coll.find(query, limit=batch_size))
        if not documents:
            return 0

        result = coll.delete_many({"_id": {"$in": [doc["_id"] for doc in documents]}})
        if collection in self.WATCHED_DELETES:
            for doc in documents:
                self.record_change_event(
                    ChangeEvent(
                        collection=collection,
                        document_key=str(doc["_id"]),
                        event_type=ChangeType.DELETE,
                        before=self._snapshot(doc),
                    )
                )
        return result.deleted_count

    # ------------------------------------------------------------------
    # Operation records
    # ------------------------------------------------------------------

    def insert_operation(self, record: OperationRecord) -> str:
        """
        Persist a new operation record and return its provider handle.
        """
        self._get_collection(self.OPERATIONS).insert_one(record.to_document())
        return record.name

    def get_operation(self, name: str) -> OperationRecord | None:
        document = self._get_collection(self.OPERATIONS).find_one({"name": name})
        if not document:
            return None
        return OperationRecord(**self._strip_object_id(document))

    def find_pending_operations(self, kind: OperationType) -> list[OperationRecord]:
        """
        Operation records of one kind that have not completed yet.
        """
        cursor = self._get_collection(self.OPERATIONS).find(
            {"type": OperationType(kind).value, "done": False}
        )
        return [OperationRecord(**self._strip_object_id(doc)) for doc in cursor]

    def update_operation_status(
        self, name: str, status: OperationStatus
    ) -> tuple[Dict, Dict] | None:
        """
        Write a polled provider status back to the operation record.

        Only ever sets done=True, so a completed record never reverts. Stamps
        last_updated and defaults a missing `deployed` flag to False. When
        the write flips done, an `update` change event is recorded with the
        before and after images.

        The flip also sets `completion_pending` in the same document write.
        The flag is cleared only once the change event is stored, so a failed
        event insert leaves the completion for `announce_pending_completions`.

        Returns:
            (before, after) documents, or None if the record does not exist
        """
        collection = self._get_collection(self.OPERATIONS)
        current = collection.find_one({"name": name}, projection={"deployed": 1})
        if current is None:
            return None

        update_doc: Dict[str, Any] = {"last_updated": datetime.now(timezone.utc)}
        if "deployed" not in current:
            update_doc["deployed"] = False

        if status.done:
            before = collection.find_one_and_update(
                {"name": name, "done": {"$ne": True}},
                {"$set": {**update_doc, "done": True, self.COMPLETION_PENDING: True}},
                return_document=ReturnDocument.BEFORE,
            )
            if before is not None:
                after = {**before, **update_doc, "done": True}
                self._announce_completion(name, before, after)
                return before, after

        before = collection.find_one_and_update(
            {"name": name},
            {"$set": update_doc},
            return_document=ReturnDocument.BEFORE,
        )
        if before is None:
            return None
        return before, {**before, **update_doc}

    def _announce_completion(self, name: str, before: Dict, after: Dict) -> None:
        self.record_change_event(
            ChangeEvent(
                collection=self.OPERATIONS,
                document_key=name,
                event_type=ChangeType.UPDATE,
                before=self._snapshot(before),
                after=self._snapshot(after),
            )
        )
        self._get_collection(self.OPERATIONS).update_one(
            {"name": name},
            {"$unset": {self.COMPLETION_PENDING: ""}},
        )

    def announce_pending_completions(self, kind: OperationType | None = None) -> list[str]:
        """
        Record the change event of every done flip whose event never landed.

        Returns:
            Names of the operations announced
        """
        query: Dict[str, Any] = {self.COMPLETION_PENDING: True}
        if kind is not None:
            query["type"] = OperationType(kind).value

        announced = []
        for document in self._get_collection(self.OPERATIONS).find(query):
            after = {k: v for k, v in document.items() if k != self.COMPLETION_PENDING}
            before = {**after, "done": False}
            self._announce_completion(document["name"], before, after)
            announced.append(document["name"])
        return announced

    # ------------------------------------------------------------------
    # Stage transition claims
    # ------------------------------------------------------------------

    def claim_stage_transition(self, transition: StageTransition) -> bool:
        """
        Record the claim to advance past a completed operation.

        Returns:
            True if this caller owns the claim, False if it already exists
        """
        try:
            self._get_collection(self.STAGE_TRANSITIONS).insert_one(transition.to_document())
        except DuplicateKeyError:
            return False
        return True

    def mark_stage_advanced(self, source_operation: str, next_operation: str | None) -> None:
        self._get_collection(self.STAGE_TRANSITIONS).update_one(
            {"_id": source_operation},
            {
                "$set": {
                    "status": TransitionStatus.ADVANCED.value,
                    "next_operation": next_operation,
                }
            },
        )

    def release_stage_transition(self, source_operation: str) -> None:
        """
        Drop an unfinished claim so a later trigger may retry the stage.
        """
        self._get_collection(self.STAGE_TRANSITIONS).delete_one(
            {"_id": source_operation, "status": TransitionStatus.CLAIMED.value}
        )

    def get_stage_transition(self, source_operation: str) -> Dict | None:
        return self._get_collection(self.STAGE_TRANSITIONS).find_one({"_id": source_operation})

    # ------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------

    def record_change_event(self, event: ChangeEvent) -> str:
        result = self._get_collection(self.CHANGE_EVENTS).insert_one(event.to_document())
        return str(result.inserted_id)

    def fetch_unprocessed_change_events(self, limit: int = 100) -> list[ChangeEvent]:
        """
        Oldest unprocessed change events first.
        """
        cursor = (
            self._get_collection(self.CHANGE_EVENTS)
            .find({"processed": False})
            .sort([("created_at", ASCENDING)])
            .limit(limit)
        )
        return [
            ChangeEvent(event_id=str(doc["_id"]), **self._strip_object_id(doc))
            for doc in cursor
        ]

    def get_change_event(self, event_id: str) -> ChangeEvent | None:
        try:
            oid = ObjectId(event_id)
        except (InvalidId, TypeError):
            return None
        document = self._get_collection(self.CHANGE_EVENTS).find_one({"_id": oid})
        if not document:
            return None
        return ChangeEvent(event_id=event_id, **self._strip_object_id(document))

    def mark_change_event_processed(self, event_id: str) -> None:
        self._get_collection(self.CHANGE_EVENTS).update_one(
            {"_id": ObjectId(event_id)},
            {"$set": {"processed": True}},
        )

    # ------------------------------------------------------------------
    # Datasets and collaborators
    # ------------------------------------------------------------------

    def insert_dataset(self, dataset: Dataset, key: str | None = None) -> str:
        return self.insert_record(self.DATASETS, dataset.to_document(), key)

    def get_dataset(self, key: str) -> Dataset | None:
        document = self.get_record(self.DATASETS, key)
        if not document:
            return None
        return Dataset(**self._strip_object_id(document))

    def find_datasets_by_automl_id(self, automl_id: str) -> list[Dataset]:
        return [
            Dataset(**self._strip_object_id(doc))
            for doc in self.find_records(self.DATASETS, {"automlId": automl_id})
        ]

    def add_collaborator(self, collaborator: Collaborator, key: str | None = None) -> str:
        """
        Insert a collaborator record and add its email to the dataset.
        """
        key = self.insert_record(self.COLLABORATORS, collaborator.to_document(), key)
        self._get_collection(self.DATASETS).update_one(
            {"_id": collaborator.parent_key},
            {"$addToSet": {"collaborators": collaborator.email}},
        )
        return key

    def remove_collaborator_email(self, dataset_key: str, email: str) -> bool:
        """
        Pull one email from a dataset's collaborators set.

        Returns:
            True if the dataset exists
        """
        result = self._get_collection(self.DATASETS).update_one(
            {"_id": dataset_key},
            {"$pull": {"collaborators": email}},
        )
        return result.matched_count == 1

    # ------------------------------------------------------------------
    # Labels and images
    # ------------------------------------------------------------------

    def insert_label(self, label: Label, key: str | None = None) -> str:
        return self.insert_record(self.LABELS, label.to_document(), key)

    def get_label(self, key: str) -> Label | None:
        document = self.get_record(self.LABELS, key)
        if not document:
            return None
        return Label(**self._strip_object_id(document))

    def _read_total_images(self, label_key: str) -> tuple[bool, int | None]:
        """
        Read a label's counter as (exists, total_images).

        total_images is None when the field is absent.
        """
        document = self._get_collection(self.LABELS).find_one(
            {"_id": label_key}, projection={"total_images": 1}
        )
        if document is None:
            return False, None
        return True, document.get("total_images")

    def adjust_label_image_count(self, label_key: str, delta: int) -> int | None:
        """
        Add `delta` to a label's total_images, clamped at zero.

        The write is a compare-and-set on the value just read, retried when a
        concurrent writer got there first, so no update is lost.

        Returns:
            The new count, or None if the label does not exist

        Raises:
            RuntimeError: If the counter kept changing underneath every attempt
        """
        collection = self._get_collection(self.LABELS)
        for _ in range(self.COUNTER_MAX_ATTEMPTS):
            exists, current = self._read_total_images(label_key)
            if not exists:
                return None

            new_total = max((current or 0) + delta, 0)
            expected = (
                {"total_images": current}
                if current is not None
                else {"total_images": {"$exists": False}}
            )
            result = collection.update_one(
                {"_id": label_key, **expected},
                {"$set": {"total_images": new_total}},
            )
            if result.matched_count == 1:
                return new_total

        raise RuntimeError(
            f"total_images of label '{label_key}' changed during "
            f"{self.COUNTER_MAX_ATTEMPTS} update attempts"
        )

    def add_image(self, image: Image, key: str | None = None) -> str:
        """
        Insert an image record and increment its label's counter.
        """
        key = self.insert_record(self.IMAGES, image.to_document(), key)
        self.adjust_label_image_count(image.parent_key, 1)
        return key

    def get_image(self, key: str) -> Image | None:
        document = self.get_record(self.IMAGES, key)
        if not document:
            return None
        return Image(**self._strip_object_id(document))

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def insert_model(self, artifact: ModelArtifact) -> str:
        return self.insert_record(self.MODELS, artifact.to_document())

    def find_models(self, dataset_id: str) -> list[ModelArtifact]:
        return [
            ModelArtifact(**self._strip_object_id(doc))
            for doc in self.find_records(self.MODELS, {"dataset_id": dataset_id})
        ]
