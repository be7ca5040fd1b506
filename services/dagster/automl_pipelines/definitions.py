"""Dagster Definitions - Repository Configuration.

Defines jobs, resources, and sensors for the AutoML training pipeline.
"""

from dagster import Definitions, EnvVar

from .jobs import (
    advance_stage_job,
    delete_dataset_job,
    delete_image_job,
    delete_label_job,
    remove_collaborator_job,
)
from .resources import AutoMLResource, MinIOResource, MongoDBResource, NotificationResource
from .sensors import (
    change_event_sensor,
    export_model_progress_sensor,
    import_data_progress_sensor,
    train_model_progress_sensor,
)


# =============================================================================
# Definitions
# =============================================================================

defs = Definitions(
    jobs=[
        advance_stage_job,
        delete_dataset_job,
        delete_label_job,
        delete_image_job,
        remove_collaborator_job,
    ],
    resources={
        "minio": MinIOResource(
            endpoint=EnvVar("MINIO_ENDPOINT"),
            access_key=EnvVar("MINIO_ROOT_USER"),
            secret_key=EnvVar("MINIO_ROOT_PASSWORD"),
            use_ssl=False,
            bucket=EnvVar("AUTOML_BUCKET"),
        ),
        "mongodb": MongoDBResource(
            connection_string=EnvVar("MONGO_CONNECTION_STRING"),
            database="automl_training",
        ),
        "automl": AutoMLResource(
            project_id=EnvVar("AUTOML_PROJECT_ID"),
            location="us-central1",
            access_token=EnvVar("AUTOML_ACCESS_TOKEN"),
        ),
        "notifier": NotificationResource(
            server_key=EnvVar("NOTIFY_SERVER_KEY"),
        ),
    },
    schedules=[],
    sensors=[
        import_data_progress_sensor,  # Polls IMPORT_DATA every 5 minutes
        export_model_progress_sensor,  # Polls EXPORT_MODEL every 10 minutes
        train_model_progress_sensor,  # Polls TRAIN_MODEL every 15 minutes
        change_event_sensor,  # Routes completions and deletions to jobs
    ],
)
