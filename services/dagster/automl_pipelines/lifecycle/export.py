# =============================================================================
# Export Finalization
# =============================================================================
# Once an export operation completes: list the export objects, select the
# latest timestamped folder, record the model artifact and notify the owner.
# =============================================================================

from libs.export_resolution import ExportArtifact, resolve_export
from libs.models import ModelArtifact
from libs.storage_paths import export_prefix

from .notify import notify_owner

__all__ = ["resolve_latest_export", "finalize_export"]


def resolve_latest_export(storage, dataset_id: str) -> ExportArtifact:
    """
    Resolve the latest export of a dataset from the bucket listing.

    Raises:
        NotFoundError: If there are no export objects for the dataset
        ExportParseError: If any export folder name is malformed
        AmbiguousArtifactError: If the latest folder lacks exactly one
            model file or label file
    """
    keys = storage.list_keys(export_prefix(dataset_id))
    return resolve_export(keys, dataset_id)


def finalize_export(mongodb, storage, notifier, dataset_id: str, log) -> ModelArtifact:
    """
    Record the latest export as a Model record, then notify the owner.

    Resolution errors propagate and leave no Model record behind.
    Notification is best-effort and never undoes the Model record.

    Args:
        mongodb: MongoDBResource ledger
        storage: MinIOResource for the AutoML bucket
        notifier: OwnerNotifier (None skips notification)
        dataset_id: Provider dataset ID
        log: Logger (context.log in Dagster)

    Returns:
        The persisted ModelArtifact
    """
    log.info(f"Attempting to find the latest export for dataset {dataset_id}")
    artifact = resolve_latest_export(storage, dataset_id)
    log.info(
        f"Latest export found: {artifact.folder} for timestamp "
        f"{artifact.generated_at.isoformat()}"
    )

    record = ModelArtifact(
        dataset_id=dataset_id,
        model=artifact.model,
        label=artifact.label,
        generated_at=artifact.generated_at,
    )
    mongodb.insert_model(record)
    log.info(f"Saved model export info: model={artifact.model}, label={artifact.label}")

    if notifier is not None:
        notify_owner(mongodb, notifier, dataset_id, log)
    return record
