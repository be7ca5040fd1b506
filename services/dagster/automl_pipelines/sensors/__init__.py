"""Dagster Sensors - Polling and Event-Driven Job Triggers."""

from .change_event_sensor import change_event_sensor
from .operation_sensors import (
    export_model_progress_sensor,
    import_data_progress_sensor,
    train_model_progress_sensor,
)

__all__ = [
    "change_event_sensor",
    "export_model_progress_sensor",
    "import_data_progress_sensor",
    "train_model_progress_sensor",
]
