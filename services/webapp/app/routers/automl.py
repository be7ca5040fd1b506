# =============================================================================
# AutoML Router
# =============================================================================
# Thin JSON endpoints over the AutoML provider: datasets, import, training,
# exports and models.
# =============================================================================

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from app.config import get_settings
from app.services.automl_service import get_automl_gateway
from app.services.ledger_service import get_ledger
from libs.automl import AutoMLGateway
from libs.errors import NotFoundError
from libs.models import OperationHandle, OperationRecord, OperationType, validate_dataset_name
from libs.storage_paths import build_storage_uri
from services.dagster.automl_pipelines.resources import MongoDBResource

logger = logging.getLogger(__name__)

router = APIRouter(tags=["automl"])


class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateDatasetRequest(_CamelRequest):
    display_name: Optional[str] = Field(None, alias="displayName")


class ImportRequest(_CamelRequest):
    """Import `{name}/{labels}` from the AutoML bucket into a dataset."""

    name: Optional[str] = None
    dataset_id: Optional[str] = Field(None, alias="datasetId")
    labels: Optional[str] = None
    training_budget: Optional[int] = Field(None, alias="trainingBudget", ge=1)


class TrainRequest(_CamelRequest):
    dataset_id: Optional[str] = Field(None, alias="datasetId")
    train_budget: Optional[int] = Field(None, alias="trainBudget", ge=1)
    model_type: Optional[str] = Field(None, alias="modelType")


class ExportRequest(_CamelRequest):
    model_id: Optional[str] = Field(None, alias="modelId")
    gcs_path: Optional[str] = Field(None, alias="gcsPath")


class ExportLatestRequest(_CamelRequest):
    dataset_id: Optional[str] = Field(None, alias="datasetId")
    gcs_path: Optional[str] = Field(None, alias="gcsPath")


def _operation_response(handle: OperationHandle) -> dict:
    return {"name": handle.name, **handle.metadata}


# -----------------------------------------------------------------------------
# Datasets
# -----------------------------------------------------------------------------

@router.get("/datasets")
async def list_datasets(gateway: AutoMLGateway = Depends(get_automl_gateway)) -> list[dict]:
    """List the provider's datasets."""
    return gateway.list_datasets()


@router.post("/datasets")
async def create_dataset(
    request: CreateDatasetRequest,
    gateway: AutoMLGateway = Depends(get_automl_gateway),
) -> dict:
    """Create an image classification dataset."""
    if not request.display_name:
        raise HTTPException(status_code=400, detail="Expected a dataset `displayName`")
    try:
        validate_dataset_name(request.display_name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None
    return gateway.create_dataset(request.display_name)


@router.delete("/datasets/{dataset_id}")
async def delete_dataset(
    dataset_id: str,
    gateway: AutoMLGateway = Depends(get_automl_gateway),
) -> dict:
    """Delete a provider dataset; 404 when the ID is unknown."""
    return _operation_response(gateway.delete_dataset(dataset_id))


# -----------------------------------------------------------------------------
# Long-running operations
# -----------------------------------------------------------------------------

@router.post("/import")
async def import_data(
    request: ImportRequest,
    gateway: AutoMLGateway = Depends(get_automl_gateway),
    ledger: MongoDBResource = Depends(get_ledger),
) -> dict:
    """
    Start importing a label manifest and record the IMPORT_DATA operation.

    The record is what the import progress sensor polls; its completion
    starts training.
    """
    if not request.name or not request.dataset_id or not request.labels:
        raise HTTPException(
            status_code=400,
            detail="Expected `name`, `datasetId` and `labels` in the request body",
        )

    settings = get_settings()
    input_uri = build_storage_uri(settings.automl_bucket, f"{request.name}/{request.labels}")
    try:
        handle = gateway.submit(
            OperationType.IMPORT_DATA,
            {"dataset_id": request.dataset_id, "input_uri": input_uri},
        )
    except NotFoundError:
        raise HTTPException(status_code=400, detail="Dataset not found") from None

    ledger.insert_operation(
        OperationRecord(
            name=handle.name,
            type=OperationType.IMPORT_DATA,
            dataset_id=request.dataset_id,
            training_budget=request.training_budget,
        )
    )
    logger.info(f"Recorded IMPORT_DATA operation {handle.name} for dataset {request.dataset_id}")
    return _operation_response(handle)


@router.post("/train")
async def train(
    request: TrainRequest,
    gateway: AutoMLGateway = Depends(get_automl_gateway),
) -> dict:
    """Start training a model for a dataset."""
    if not request.dataset_id:
        raise HTTPException(status_code=400, detail="Expected a `datasetId` in the request body")

    params = {"dataset_id": request.dataset_id}
    if request.train_budget is not None:
        params["train_budget"] = request.train_budget
    if request.model_type:
        params["model_type"] = request.model_type

    try:
        handle = gateway.submit(OperationType.TRAIN_MODEL, params)
    except NotFoundError:
        raise HTTPException(status_code=400, detail="Dataset not found") from None
    return _operation_response(handle)


@router.post("/export")
async def export_model(
    request: ExportRequest,
    gateway: AutoMLGateway = Depends(get_automl_gateway),
) -> dict:
    """Export one model in tflite format."""
    if not request.model_id or not request.gcs_path:
        raise HTTPException(
            status_code=400, detail="Expected `modelId` and `gcsPath` in the request body"
        )
    return _operation_response(gateway.export_model(request.model_id, request.gcs_path))


@router.post("/exportlatestmodel")
async def export_latest_model(
    request: ExportLatestRequest,
    gateway: AutoMLGateway = Depends(get_automl_gateway),
) -> dict:
    """Export the newest on-device model of a dataset."""
    if not request.dataset_id or not request.gcs_path:
        raise HTTPException(
            status_code=400, detail="Expected `datasetId` and `gcsPath` in the request body"
        )
    handle = gateway.submit(
        OperationType.EXPORT_MODEL,
        {"dataset_id": request.dataset_id, "gcs_path": request.gcs_path},
    )
    return _operation_response(handle)


@router.get("/models")
async def list_models(gateway: AutoMLGateway = Depends(get_automl_gateway)) -> list[dict]:
    """List the provider's models."""
    return gateway.list_models()
