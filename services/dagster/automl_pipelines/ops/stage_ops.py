# =============================================================================
# Stage Ops - Training Lifecycle Advancement
# =============================================================================
# Advances the pipeline after an operation record completes. Launched by the
# change event sensor with the id of the operation update event.
# =============================================================================

from dagster import Failure, MetadataValue, OpExecutionContext, op

from ..lifecycle import Failed, NextStage, handle_operation_update
from ..lifecycle.coordinator import StageResult
from .common import EVENT_CONFIG_SCHEMA, load_change_event

__all__ = ["advance_stage"]


def _advance_stage(mongodb, automl, minio, notifications, event_id: str, log) -> StageResult:
    """
    Core logic for advancing past a completed operation.

    This function is extracted for easier unit testing without Dagster context.

    Args:
        mongodb: MongoDBResource instance
        automl: AutoMLResource instance (provides the gateway)
        minio: MinIOResource instance
        notifications: NotificationResource instance (provides the notifier)
        event_id: Change event id of the operation update
        log: Logger instance (context.log)

    Returns:
        NextStage, Terminal or Failed
    """
    event = load_change_event(mongodb, event_id)
    if event.collection != mongodb.OPERATIONS:
        raise ValueError(
            f"Change event '{event_id}' is for '{event.collection}', not operations"
        )

    gateway = automl.get_gateway()
    notifier = notifications.get_notifier()
    try:
        return handle_operation_update(
            event.before,
            event.after,
            mongodb=mongodb,
            gateway=gateway,
            storage=minio,
            notifier=notifier,
            log=log,
        )
    finally:
        gateway.close()
        notifier.close()


@op(
    config_schema=EVENT_CONFIG_SCHEMA,
    required_resource_keys={"mongodb", "automl", "minio", "notifier"},
)
def advance_stage(context: OpExecutionContext) -> dict:
    """
    Advance the training lifecycle for one operation update.

    Fatal failures (an export the pipeline cannot interpret) fail the run;
    provider failures are logged and left for a later trigger.

    Returns:
        Summary of the stage result
    """
    event_id = context.op_config["event_id"]
    result = _advance_stage(
        mongodb=context.resources.mongodb,
        automl=context.resources.automl,
        minio=context.resources.minio,
        notifications=context.resources.notifier,
        event_id=event_id,
        log=context.log,
    )

    if isinstance(result, Failed):
        if result.fatal:
            raise Failure(
                description=f"Stage advancement failed: {result.reason}",
                metadata={
                    "event_id": MetadataValue.text(event_id),
                    "reason": MetadataValue.text(result.reason),
                },
            )
        return {"result": "failed", "reason": result.reason}

    if isinstance(result, NextStage):
        return {
            "result": "next_stage",
            "operation_type": result.operation_type.value,
            "operation_name": result.operation_name,
            "dataset_id": result.dataset_id,
        }
    return {"result": "terminal", "reason": result.reason}
