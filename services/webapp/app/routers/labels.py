# =============================================================================
# Labels Router
# =============================================================================
# Generates the labels.csv a dataset import reads.
# =============================================================================

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.services.ledger_service import get_storage
from libs.label_manifest import build_label_rows, render_label_manifest
from libs.storage_paths import dataset_images_prefix, label_manifest_key
from services.dagster.automl_pipelines.resources import MinIOResource

logger = logging.getLogger(__name__)

router = APIRouter(tags=["labels"])


@router.post("/labels-file")
async def create_labels_file(
    dataset: Optional[str] = Query(None),
    storage: MinIOResource = Depends(get_storage),
) -> dict:
    """
    Write `{dataset}/labels.csv` listing every image under `datasets/{dataset}/`.

    Each row is "gs://{bucket}/{path},{label}", the label being the folder
    directly below the dataset.
    """
    if not dataset:
        raise HTTPException(status_code=404, detail="Dataset not found")

    keys = storage.list_keys(dataset_images_prefix(dataset))
    rows = build_label_rows(storage.bucket, keys)
    if not rows:
        raise HTTPException(status_code=500, detail="No images found")

    key = label_manifest_key(dataset)
    storage.put_bytes(key, render_label_manifest(rows), content_type="text/csv")
    logger.info(f"Uploaded {len(rows)} label rows to {key}")
    return {"success": f"File uploaded to {key}", "rows": len(rows)}
