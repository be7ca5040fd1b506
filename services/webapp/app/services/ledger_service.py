# =============================================================================
# Ledger Service - Records and Object Storage
# =============================================================================
# The webapp writes records through the same MongoDBResource the Dagster
# code uses, so record deletes reach the change feed the cascade jobs read.
# =============================================================================

from typing import Optional

from app.config import get_settings
from services.dagster.automl_pipelines.resources import MinIOResource, MongoDBResource


_ledger: Optional[MongoDBResource] = None
_storage: Optional[MinIOResource] = None


def get_ledger() -> MongoDBResource:
    """Get or create the record store singleton."""
    global _ledger
    if _ledger is None:
        settings = get_settings()
        _ledger = MongoDBResource(
            connection_string=settings.mongo_connection_string,
            database=settings.mongo_database,
        )
    return _ledger


def get_storage() -> MinIOResource:
    """Get or create the object storage singleton."""
    global _storage
    if _storage is None:
        settings = get_settings()
        _storage = MinIOResource(
            endpoint=settings.minio_endpoint,
            access_key=settings.minio_root_user,
            secret_key=settings.minio_root_password,
            use_ssl=settings.minio_use_ssl,
            bucket=settings.automl_bucket,
        )
    return _storage
