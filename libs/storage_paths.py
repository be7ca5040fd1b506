# =============================================================================
# Storage Path Utilities
# =============================================================================
# Shared helpers for building and parsing bucket paths.
# Used by the Dagster lifecycle code and the webapp.
# =============================================================================

"""
Storage path utilities for the training pipeline.

Bucket layout:
- datasets/{dataset_name}/{label}/...            training images
- {dataset_name}/labels.csv                      generated label manifest
- models/on-device/{dataset_id}/{ts}_tflite/...  model exports
"""

from typing import Tuple

__all__ = [
    "GCS_SCHEME",
    "parse_storage_uri",
    "build_storage_uri",
    "dataset_storage_prefix",
    "dataset_images_prefix",
    "label_manifest_key",
    "export_prefix",
    "export_destination",
]

GCS_SCHEME = "gs://"


def parse_storage_uri(uri: str) -> Tuple[str, str]:
    """
    Parse a storage URI into bucket and key components.

    Args:
        uri: Full URI (e.g., "gs://automl-vcm/flowers/labels.csv")

    Returns:
        Tuple of (bucket, key) e.g., ("automl-vcm", "flowers/labels.csv")

    Raises:
        ValueError: If the URI is not gs:// format or is missing a key

    Examples:
        >>> parse_storage_uri("gs://automl-vcm/flowers/labels.csv")
        ('automl-vcm', 'flowers/labels.csv')
    """
    if not uri.startswith(GCS_SCHEME):
        raise ValueError(f"Invalid storage URI: '{uri}'. Must start with '{GCS_SCHEME}'")

    parts = uri[len(GCS_SCHEME):].split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid storage URI: '{uri}'. Expected 'gs://bucket/key'")

    return parts[0], parts[1]


def build_storage_uri(bucket: str, key: str) -> str:
    """
    Build a gs:// URI from a bucket and key.

    Examples:
        >>> build_storage_uri("automl-vcm", "/flowers/labels.csv")
        'gs://automl-vcm/flowers/labels.csv'
    """
    return f"{GCS_SCHEME}{bucket}/{key.lstrip('/')}"


def dataset_storage_prefix(dataset_name: str) -> str:
    """
    Folder holding every object of one dataset.

    The trailing slash keeps a dataset from matching siblings that share a
    name prefix.

    Examples:
        >>> dataset_storage_prefix("cat")
        'cat/'
    """
    return f"{dataset_name}/"


def dataset_images_prefix(dataset_name: str) -> str:
    """Prefix under which a dataset's training images are stored."""
    return f"datasets/{dataset_name}/"


def label_manifest_key(dataset_name: str) -> str:
    """Key of the generated label manifest for a dataset."""
    return f"{dataset_name}/labels.csv"


def export_prefix(dataset_id: str) -> str:
    """Key prefix under which the provider writes model exports for a dataset."""
    return f"models/on-device/{dataset_id}/"


def export_destination(bucket: str, dataset_id: str) -> str:
    """
    Deterministic export target handed to the provider.

    Examples:
        >>> export_destination("automl-vcm", "ICN123")
        'gs://automl-vcm/models/on-device/ICN123'
    """
    return build_storage_uri(bucket, export_prefix(dataset_id).rstrip("/"))
