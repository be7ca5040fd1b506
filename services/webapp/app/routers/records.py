# =============================================================================
# Records Router
# =============================================================================
# Creates and deletes dataset graph records. Deletes enter the change feed,
# where the Dagster cascade jobs pick them up.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from app.services.ledger_service import get_ledger
from libs.models import Collaborator, Dataset, Image, Label
from services.dagster.automl_pipelines.resources import MongoDBResource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/records", tags=["records"])

DELETABLE_COLLECTIONS = ("datasets", "labels", "images", "collaborators")

_RECORD_MODELS = {
    "datasets": Dataset,
    "labels": Label,
    "images": Image,
    "collaborators": Collaborator,
}


def _check_collection(collection: str) -> None:
    if collection not in DELETABLE_COLLECTIONS:
        allowed = ", ".join(DELETABLE_COLLECTIONS)
        raise HTTPException(status_code=400, detail=f"collection should be one of {allowed}")


@router.post("/{collection}", status_code=201)
async def create_record(
    collection: str,
    body: dict,
    ledger: MongoDBResource = Depends(get_ledger),
) -> dict:
    """
    Create a record. Images bump their label's counter and collaborators
    join their dataset's collaborators set.
    """
    _check_collection(collection)
    try:
        record = _RECORD_MODELS[collection](**body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    if isinstance(record, Dataset):
        key = ledger.insert_dataset(record)
    elif isinstance(record, Label):
        key = ledger.insert_label(record)
    elif isinstance(record, Image):
        key = ledger.add_image(record)
    else:
        key = ledger.add_collaborator(record)
    return {"collection": collection, "key": key}


@router.delete("/{collection}/{key}")
async def delete_record(
    collection: str,
    key: str,
    ledger: MongoDBResource = Depends(get_ledger),
) -> dict:
    """Delete a record; its dependents are removed by the matching cascade job."""
    _check_collection(collection)
    deleted = ledger.delete_record(collection, key)
    if deleted is None:
        raise HTTPException(status_code=404, detail=f"No {collection} record with key {key}")
    logger.info(f"Deleted {collection}/{key}")
    return {"collection": collection, "deleted": key}
