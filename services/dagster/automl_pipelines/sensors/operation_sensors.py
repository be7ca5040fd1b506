"""Operation progress sensors.

One sensor per operation kind refreshes pending operation records from the
provider: IMPORT_DATA every 5 minutes, EXPORT_MODEL every 10 and
TRAIN_MODEL every 15. They launch no runs themselves; a completion enters
the change feed and change_event_sensor picks it up.
"""

from dagster import (
    DefaultSensorStatus,
    SensorDefinition,
    SensorEvaluationContext,
    SkipReason,
    sensor,
)

from libs.models import OperationType

from ..lifecycle import poll_operations
from ..resources import AutoMLResource, MongoDBResource

__all__ = [
    "POLL_INTERVALS",
    "build_progress_sensor",
    "import_data_progress_sensor",
    "export_model_progress_sensor",
    "train_model_progress_sensor",
]


POLL_INTERVALS: dict[OperationType, int] = {
    OperationType.IMPORT_DATA: 5 * 60,
    OperationType.EXPORT_MODEL: 10 * 60,
    OperationType.TRAIN_MODEL: 15 * 60,
}


def _poll_kind(
    context: SensorEvaluationContext,
    mongodb: MongoDBResource,
    automl: AutoMLResource,
    kind: OperationType,
) -> SkipReason:
    try:
        gateway = automl.get_gateway()
    except Exception as e:
        context.log.error(f"Failed to create AutoML gateway: {e}")
        return SkipReason(f"Error creating gateway: {e}")

    try:
        summary = poll_operations(mongodb, gateway, kind, context.log)
    except Exception as e:
        context.log.error(f"Failed to poll {kind.value} operations: {e}")
        return SkipReason(f"Error polling {kind.value} operations: {e}")
    finally:
        gateway.close()

    if summary.examined == 0:
        return SkipReason(f"No pending operations found for type {kind.value}")
    return SkipReason(
        f"{summary.examined} operations updated: {kind.value} "
        f"({len(summary.completed)} completed, {len(summary.errors)} errors)"
    )


def build_progress_sensor(kind: OperationType) -> SensorDefinition:
    """
    Build the progress sensor for one operation kind.

    Args:
        kind: Operation type the sensor polls

    Returns:
        Sensor named "{kind}_progress_sensor" running at the kind's interval
    """
    kind = OperationType(kind)

    @sensor(
        name=f"{kind.value.lower()}_progress_sensor",
        minimum_interval_seconds=POLL_INTERVALS[kind],
        default_status=DefaultSensorStatus.RUNNING,
        description=f"Refreshes pending {kind.value} operation records from the AutoML API",
    )
    def _progress_sensor(
        context: SensorEvaluationContext,
        mongodb: MongoDBResource,
        automl: AutoMLResource,
    ):
        yield _poll_kind(context, mongodb, automl, kind)

    return _progress_sensor


import_data_progress_sensor = build_progress_sensor(OperationType.IMPORT_DATA)
export_model_progress_sensor = build_progress_sensor(OperationType.EXPORT_MODEL)
train_model_progress_sensor = build_progress_sensor(OperationType.TRAIN_MODEL)
