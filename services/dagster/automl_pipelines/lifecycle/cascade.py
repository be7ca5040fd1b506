# =============================================================================
# Dataset Lifecycle Manager
# =============================================================================
# Cascading clean-up when records are deleted:
# - dataset   -> collaborators, labels (and their images), models,
#                operations, bucket objects in the dataset folder
# - label     -> images
# - image     -> label counter decrement, uploaded object
# - collaborator -> email pulled from the dataset's collaborators set
#
# Each cascade step runs in its own failure scope; a failing step is logged
# and the remaining steps still run.
# =============================================================================

from dataclasses import dataclass, field
from typing import Any, Optional

from libs.models import Collaborator, Dataset, Image
from libs.storage_paths import dataset_storage_prefix

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "CascadeReport",
    "delete_query_batch",
    "cascade_dataset_deletion",
    "cascade_label_deletion",
    "release_deleted_image",
    "remove_collaborator",
]

DEFAULT_BATCH_SIZE = 100


@dataclass
class CascadeReport:
    """Per-step deletion counts and errors of a cascade."""

    deleted: dict[str, int] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {"deleted": dict(self.deleted), "errors": dict(self.errors)}


def delete_query_batch(
    mongodb, collection: str, query: dict, batch_size: int = DEFAULT_BATCH_SIZE
) -> int:
    """
    Delete every record matching `query`, at most `batch_size` per batch.

    Loops until a batch comes back empty, so the size of each delete stays
    bounded however many records match.

    Returns:
        Total number of records deleted
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    total = 0
    while True:
        deleted = mongodb.delete_batch(collection, query, batch_size)
        if deleted == 0:
            return total
        total += deleted


def _delete_label_images(mongodb, label_key: str, batch_size: int) -> int:
    return delete_query_batch(mongodb, mongodb.IMAGES, {"parent_key": label_key}, batch_size)


def cascade_dataset_deletion(
    mongodb,
    storage,
    dataset_key: str,
    dataset: Dataset | dict,
    log,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> CascadeReport:
    """
    Remove everything that hangs off a deleted dataset.

    Args:
        mongodb: MongoDBResource ledger
        storage: MinIOResource for the AutoML bucket
        dataset_key: Store key of the deleted dataset
        dataset: The deleted dataset record (Dataset or its document)
        log: Logger (context.log in Dagster)
        batch_size: Records removed per delete batch

    Returns:
        CascadeReport with counts per step and any step errors
    """
    if isinstance(dataset, dict):
        dataset = Dataset(**{k: v for k, v in dataset.items() if k != "_id"})

    name = dataset.name
    automl_id = dataset.automl_id
    report = CascadeReport()
    log.info(f"Attempting to delete dataset: {name} with key: {dataset_key}")

    # Collaborators
    try:
        report.deleted["collaborators"] = delete_query_batch(
            mongodb, mongodb.COLLABORATORS, {"parent_key": dataset_key}, batch_size
        )
        log.info("Successfully deleted collaborators.")
    except Exception as e:
        report.errors["collaborators"] = str(e)
        log.error(f"Error while deleting collaborators for dataset {name}: {e}")

    # Labels, each label's images first
    try:
        images = 0
        for label in mongodb.find_records(mongodb.LABELS, {"parent_key": dataset_key}):
            label_key = str(label["_id"])
            try:
                images += _delete_label_images(mongodb, label_key, batch_size)
            except Exception as e:
                report.errors[f"images:{label_key}"] = str(e)
                log.error(f"Error in deleting images for label {label_key}: {e}")
        report.deleted["images"] = images
        report.deleted["labels"] = delete_query_batch(
            mongodb, mongodb.LABELS, {"parent_key": dataset_key}, batch_size
        )
        log.info("Successfully deleted labels.")
    except Exception as e:
        report.errors["labels"] = str(e)
        log.error(f"Error while deleting labels for dataset {name}: {e}")

    # Models and operations are keyed by the provider dataset ID
    if automl_id:
        for step, collection in (("models", mongodb.MODELS), ("operations", mongodb.OPERATIONS)):
            try:
                report.deleted[step] = delete_query_batch(
                    mongodb, collection, {"dataset_id": automl_id}, batch_size
                )
                log.info(f"Successfully deleted {step}.")
            except Exception as e:
                report.errors[step] = str(e)
                log.error(f"Error while deleting {step} for dataset {name}: {e}")
    else:
        log.warning(f"Dataset {name} has no automlId; skipping models and operations")

    # Bucket objects
    try:
        report.deleted["objects"] = storage.remove_prefix(dataset_storage_prefix(name))
        log.info(f"Deleted files from automl bucket for dataset {name}")
    except Exception as e:
        report.errors["objects"] = str(e)
        log.error(f"Error deleting files from automl bucket for {name}: {e}")

    return report


def cascade_label_deletion(
    mongodb, label_key: str, log, batch_size: int = DEFAULT_BATCH_SIZE
) -> int:
    """
    Remove the images of a deleted label.

    Returns:
        Number of image records deleted
    """
    log.info(f"Attempting to delete images of label: {label_key}")
    deleted = _delete_label_images(mongodb, label_key, batch_size)
    log.info(f"Deleted {deleted} images of label {label_key}")
    return deleted


def release_deleted_image(mongodb, storage, image: Image | dict, log) -> Optional[int]:
    """
    Undo the side effects of an image record that was deleted.

    Decrements the parent label's total_images (never below zero) and
    removes the uploaded object from the bucket.

    Returns:
        The label's new total_images, or None if the label no longer exists
    """
    if isinstance(image, dict):
        image = Image(**{k: v for k, v in image.items() if k != "_id"})

    remaining = mongodb.adjust_label_image_count(image.parent_key, -1)
    if remaining is None:
        log.info(f"Label {image.parent_key} no longer exists; counter not changed")
    else:
        log.info(f"Label {image.parent_key} now has {remaining} images")

    if image.upload_path:
        storage.remove_object(image.upload_path)
        log.info(f"{image.upload_path} deleted from bucket {storage.bucket}")
    return remaining


def remove_collaborator(mongodb, collaborator: Collaborator | dict, log) -> bool:
    """
    Pull a deleted collaborator's email from its dataset.

    Errors are logged, not raised.

    Returns:
        True if the dataset was updated
    """
    if isinstance(collaborator, dict):
        collaborator = Collaborator(**{k: v for k, v in collaborator.items() if k != "_id"})

    log.info(
        f"Attempting to remove {collaborator.email} from dataset with key: "
        f"{collaborator.parent_key}"
    )
    try:
        updated = mongodb.remove_collaborator_email(collaborator.parent_key, collaborator.email)
    except Exception as e:
        log.error(
            f"Error while removing collaborator from dataset {collaborator.parent_key}: {e}"
        )
        return False

    if not updated:
        log.warning(f"Dataset {collaborator.parent_key} not found; nothing to update")
    return updated
