# =============================================================================
# Training Lifecycle Coordinator
# =============================================================================
# Reacts to an operation record flipping from not-done to done and advances
# the pipeline: IMPORT_DATA -> TRAIN_MODEL -> EXPORT_MODEL -> model artifact.
#
# Every advance is claimed in `stage_transitions` under the completed
# operation's handle before anything is submitted, so a re-delivered
# completion observes the claim and does nothing. A failed advance releases
# its claim; the next independent trigger may retry it.
# =============================================================================

from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from libs.errors import (
    AmbiguousArtifactError,
    ExportParseError,
    InvalidInputError,
    NotFoundError,
    ProviderError,
)
from libs.models import ModelArtifact, OperationRecord, OperationType, StageTransition
from libs.storage_paths import export_destination

from .export import finalize_export

__all__ = [
    "NextStage",
    "Terminal",
    "Failed",
    "StageResult",
    "StageContext",
    "is_completion",
    "handle_operation_update",
]


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class NextStage:
    """The next stage was submitted and recorded."""

    operation_type: OperationType
    operation_name: str
    dataset_id: str


@dataclass(frozen=True)
class Terminal:
    """Nothing (more) to advance: a no-op update or the end of the pipeline."""

    reason: str
    artifact: Optional[ModelArtifact] = None


@dataclass(frozen=True)
class Failed:
    """
    Advancing failed. No next-stage record was written.

    `fatal` marks upstream data the pipeline cannot interpret (a malformed
    or ambiguous export); other failures are left for a later trigger.
    """

    reason: str
    fatal: bool = False


StageResult = Union[NextStage, Terminal, Failed]


@dataclass
class StageContext:
    """Collaborators a stage handler may use."""

    mongodb: Any
    gateway: Any
    storage: Any
    notifier: Any
    log: Any

    @property
    def bucket(self) -> str:
        return self.storage.bucket


# =============================================================================
# Stage Handlers
# =============================================================================

def _advance_to_training(ctx: StageContext, record: OperationRecord) -> StageResult:
    ctx.log.info(f"Attempting to initiate training for datasetId: {record.dataset_id}")
    handle = ctx.gateway.train(record.dataset_id, train_budget=record.training_budget)
    return NextStage(OperationType.TRAIN_MODEL, handle.name, record.dataset_id)


def _advance_to_export(ctx: StageContext, record: OperationRecord) -> StageResult:
    gcs_path = export_destination(ctx.bucket, record.dataset_id)
    ctx.log.info(f"Attempting to initiate export to gcs path {gcs_path}")
    handle = ctx.gateway.export_latest_model(record.dataset_id, gcs_path)
    return NextStage(OperationType.EXPORT_MODEL, handle.name, record.dataset_id)


def _finalize_export(ctx: StageContext, record: OperationRecord) -> StageResult:
    artifact = finalize_export(
        ctx.mongodb, ctx.storage, ctx.notifier, record.dataset_id, ctx.log
    )
    return Terminal("export finalized", artifact=artifact)


_HANDLERS: dict[OperationType, Callable[[StageContext, OperationRecord], StageResult]] = {
    OperationType.IMPORT_DATA: _advance_to_training,
    OperationType.TRAIN_MODEL: _advance_to_export,
    OperationType.EXPORT_MODEL: _finalize_export,
}

_RETRYABLE_ERRORS = (ProviderError, NotFoundError, InvalidInputError)
_EXPORT_DATA_ERRORS = (ExportParseError, AmbiguousArtifactError)


# =============================================================================
# Dispatch
# =============================================================================

def is_completion(before: Optional[dict], after: Optional[dict]) -> bool:
    """True only for a not-done -> done transition."""
    if before is None or after is None:
        return False
    return not before.get("done") and bool(after.get("done"))


def _parse_record(snapshot: dict) -> OperationRecord:
    fields = {key: value for key, value in snapshot.items() if key != "_id"}
    return OperationRecord.model_validate(fields)


def handle_operation_update(
    before: Optional[dict],
    after: Optional[dict],
    *,
    mongodb,
    gateway,
    storage,
    notifier,
    log,
) -> StageResult:
    """
    Advance the pipeline after an operation record update.

    Args:
        before: Operation record image before the update
        after: Operation record image after the update
        mongodb: MongoDBResource ledger
        gateway: AutoMLGateway
        storage: MinIOResource for the AutoML bucket
        notifier: OwnerNotifier (None skips owner notification)
        log: Logger (context.log in Dagster)

    Returns:
        NextStage, Terminal or Failed. Exactly one stage handler runs per
        completed operation, however often the completion is delivered.
    """
    if before is None or after is None:
        log.info("One of before/after is missing. Nothing to do")
        return Terminal("no snapshot")

    if not is_completion(before, after):
        return Terminal("not a completion")

    try:
        record = _parse_record(before)
    except ValidationError as e:
        log.error(f"Completed operation has an invalid record: {e}")
        return Failed(f"invalid operation record: {e}", fatal=True)

    log.info(f"Detected a {record.type.value} operation completion: {record.name}")

    claim = StageTransition(
        source_operation=record.name,
        dataset_id=record.dataset_id,
        next_type=record.type.next_stage,
    )
    if not mongodb.claim_stage_transition(claim):
        log.info(f"Stage after {record.name} was already advanced; skipping")
        return Terminal("already advanced")

    handler = _HANDLERS[record.type]
    try:
        result = handler(
            StageContext(mongodb=mongodb, gateway=gateway, storage=storage, notifier=notifier, log=log),
            record,
        )
    except _RETRYABLE_ERRORS as e:
        mongodb.release_stage_transition(record.name)
        fatal = record.type is OperationType.EXPORT_MODEL
        log.error(f"Error while advancing past {record.type.value} for dataset {record.dataset_id}: {e}")
        return Failed(str(e), fatal=fatal)
    except _EXPORT_DATA_ERRORS as e:
        mongodb.release_stage_transition(record.name)
        log.error(f"Unable to resolve export for dataset {record.dataset_id}: {e}")
        return Failed(str(e), fatal=True)
    except Exception:
        mongodb.release_stage_transition(record.name)
        raise

    if isinstance(result, NextStage):
        mongodb.insert_operation(
            OperationRecord(
                name=result.operation_name,
                type=result.operation_type,
                dataset_id=result.dataset_id,
                done=False,
            )
        )
        mongodb.mark_stage_advanced(record.name, result.operation_name)
        log.info(f"Saved {result.operation_type.value} operation {result.operation_name}")
    else:
        mongodb.mark_stage_advanced(record.name, None)
    return result
