# =============================================================================
# MinIO Resource - S3-Compatible Object Storage Operations
# =============================================================================
# Provides object operations on the AutoML bucket: listing exports and
# dataset images, uploading label manifests and deleting dataset objects.
# =============================================================================

import io

from dagster import ConfigurableResource
from minio import Minio
from minio.error import S3Error
from pydantic import Field


class MinIOResource(ConfigurableResource):
    """
    Dagster resource for the AutoML bucket (S3-compatible object storage).

    Provides methods for:
    - Listing object keys under a prefix (exports, dataset images)
    - Deleting single objects and whole prefixes
    - Uploading generated files such as labels.csv

    Configuration matches MinIOSettings from libs.models.config.

    Attributes:
        endpoint: Storage endpoint (host:port)
        access_key: Access key for authentication
        secret_key: Secret key for authentication
        use_ssl: Whether to use SSL/TLS (default: False)
        bucket: AutoML bucket name (default: "automl-vcm")
    """

    endpoint: str = Field(..., description="Storage endpoint (host:port)")
    access_key: str = Field(..., description="Access key for authentication")
    secret_key: str = Field(..., description="Secret key for authentication")
    use_ssl: bool = Field(False, description="Whether to use SSL/TLS")
    bucket: str = Field("automl-vcm", description="AutoML bucket name")

    def get_client(self) -> Minio:
        """
        Create a MinIO client instance.

        Returns:
            Configured Minio client
        """
        return Minio(
            self.endpoint,
            access_key=self.access_key,
            secret_key=self.secret_key,
            secure=self.use_ssl,
        )

    def list_keys(self, prefix: str) -> list[str]:
        """
        List all object keys under a prefix in the AutoML bucket.

        Args:
            prefix: Key prefix (e.g., "models/on-device/ICN123/")

        Returns:
            Object keys, empty if nothing matches

        Raises:
            RuntimeError: If the bucket does not exist
            S3Error: For other storage errors
        """
        client = self.get_client()

        try:
            objects = client.list_objects(self.bucket, prefix=prefix, recursive=True)
            return [obj.object_name for obj in objects if not obj.is_dir]
        except S3Error as exc:
            if exc.code == "NoSuchBucket":
                raise RuntimeError(f"AutoML bucket '{self.bucket}' does not exist") from exc
            raise

    def remove_object(self, key: str) -> bool:
        """
        Delete one object. A missing object is not an error.

        Returns:
            False if the object was already gone
        """
        client = self.get_client()

        try:
            client.remove_object(self.bucket, key)
        except S3Error as exc:
            if exc.code == "NoSuchKey":
                return False
            raise
        return True

    def remove_prefix(self, prefix: str) -> int:
        """
        Delete every object whose key starts with `prefix`.

        Returns:
            Number of objects deleted
        """
        removed = 0
        for key in self.list_keys(prefix):
            if self.remove_object(key):
                removed += 1
        return removed

    def put_bytes(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """
        Upload an in-memory payload to the AutoML bucket.

        Args:
            key: Destination object key
            data: File contents
            content_type: MIME type of the object
        """
        client = self.get_client()
        client.put_object(
            self.bucket,
            key,
            io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )
