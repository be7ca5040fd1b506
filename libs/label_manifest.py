# =============================================================================
# Label Manifest
# =============================================================================
# Builds the labels.csv the provider imports a dataset from.
# Images live at datasets/{dataset}/{label}/{image}; each becomes one row
# "gs://{bucket}/{path},{label}".
# =============================================================================

"""Label manifest generation for dataset imports."""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from libs.storage_paths import build_storage_uri

__all__ = ["ImagePath", "parse_image_path", "build_label_rows", "render_label_manifest"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImagePath:
    """Dataset and label encoded in an image object key."""

    dataset: str
    label: str
    full_path: str


def parse_image_path(full_path: str) -> Optional[ImagePath]:
    """
    Extract dataset and label from an image key.

    Keys with fewer than three segments below ``datasets/`` are not images
    and yield None.

    Examples:
        >>> parse_image_path("datasets/flowers/rose/1.jpg")
        ImagePath(dataset='flowers', label='rose', full_path='datasets/flowers/rose/1.jpg')
        >>> parse_image_path("datasets/flowers/readme.txt") is None
        True
    """
    relative = full_path[len("datasets/"):] if full_path.startswith("datasets/") else full_path
    parts = relative.split("/")
    if len(parts) < 3:
        logger.debug("Unable to split image path: %s", full_path)
        return None
    return ImagePath(dataset=parts[0], label=parts[1], full_path=full_path)


def build_label_rows(bucket: str, keys: Iterable[str]) -> list[str]:
    """Build one CSV row per image key; keys that are not images are skipped."""
    rows = []
    for key in keys:
        image = parse_image_path(key)
        if image is None:
            continue
        rows.append(f"{build_storage_uri(bucket, image.full_path)},{image.label}")
    return rows


def render_label_manifest(rows: list[str]) -> bytes:
    """Join rows into the uploaded file body."""
    return "\n".join(rows).encode("utf-8")
