"""Dagster Resources - External Service Connections."""

from .automl_resource import AutoMLResource
from .minio_resource import MinIOResource
from .mongodb_resource import MongoDBResource
from .notification_resource import NotificationResource

__all__ = [
    "AutoMLResource",
    "MinIOResource",
    "MongoDBResource",
    "NotificationResource",
]
