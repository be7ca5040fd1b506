"""
Migration 001: Baseline Schema

Establishes the MongoDB collections and indexes of the AutoML training
pipeline:

- operations: provider operation records polled by the progress sensors
- datasets / labels / images / collaborators: the dataset record graph
- models: finalized exports
- stage_transitions: exactly-once claims for stage advancement
- change_events: change feed read by the change event sensor

Schema constants are FROZEN - do not modify. Create new migration for changes.
"""

from pymongo.database import Database
from pymongo.errors import CollectionInvalid

VERSION = "001"

# =============================================================================
# FROZEN SCHEMA CONSTANTS - DO NOT MODIFY
# =============================================================================

OPERATIONS_SCHEMA_V001 = {
    "$jsonSchema": {
        "bsonType": "object",
        "required": ["name", "type", "dataset_id", "done"],
        "properties": {
            "name": {"bsonType": "string", "minLength": 1},
            "type": {"enum": ["IMPORT_DATA", "TRAIN_MODEL", "EXPORT_MODEL"]},
            "dataset_id": {"bsonType": "string", "minLength": 1},
            "done": {"bsonType": "bool"},
            "deployed": {"bsonType": "bool"},
            "last_updated": {"bsonType": ["date", "null"]},
            "training_budget": {"bsonType": ["int", "long"], "minimum": 1},
        },
    }
}

CHANGE_EVENTS_SCHEMA_V001 = {
    "$jsonSchema": {
        "bsonType": "object",
        "required": ["collection", "document_key", "event_type", "processed", "created_at"],
        "properties": {
            "collection": {"bsonType": "string"},
            "document_key": {"bsonType": "string"},
            "event_type": {"enum": ["insert", "update", "delete"]},
            "before": {"bsonType": ["object", "null"]},
            "after": {"bsonType": ["object", "null"]},
            "processed": {"bsonType": "bool"},
            "created_at": {"bsonType": "date"},
        },
    }
}

PLAIN_COLLECTIONS_V001 = (
    "datasets",
    "labels",
    "images",
    "collaborators",
    "models",
    "stage_transitions",
)


def _create_validated(db: Database, name: str, validator: dict) -> None:
    try:
        db.create_collection(
            name,
            validator=validator,
            validationLevel="strict",
            validationAction="error",
        )
    except CollectionInvalid:
        db.command(
            "collMod",
            name,
            validator=validator,
            validationLevel="strict",
            validationAction="error",
        )


def up(db: Database) -> None:
    """Create collections, validators and indexes."""
    # Operations collection
    _create_validated(db, "operations", OPERATIONS_SCHEMA_V001)
    db.operations.create_index([("name", 1)], unique=True)
    db.operations.create_index([("type", 1), ("done", 1)])
    db.operations.create_index([("dataset_id", 1)])

    # Change feed
    _create_validated(db, "change_events", CHANGE_EVENTS_SCHEMA_V001)
    db.change_events.create_index([("processed", 1), ("created_at", 1)])

    # Record graph
    for collection_name in PLAIN_COLLECTIONS_V001:
        try:
            db.create_collection(collection_name)
        except CollectionInvalid:
            pass

    db.datasets.create_index([("automlId", 1)])
    db.labels.create_index([("parent_key", 1)])
    db.images.create_index([("parent_key", 1)])
    db.collaborators.create_index([("parent_key", 1)])
    db.models.create_index([("dataset_id", 1)])


def down(db: Database) -> None:
    """
    Rollback migration (best effort).

    Note: This is destructive - drops all collections.
    Only use in development when resetting to clean state.
    """
    for collection_name in ("operations", "change_events", *PLAIN_COLLECTIONS_V001):
        if collection_name in db.list_collection_names():
            db.drop_collection(collection_name)
