# =============================================================================
# Operations Router
# =============================================================================
# On-demand poll of pending provider operations of one type.
# =============================================================================

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.services.automl_service import get_automl_gateway
from app.services.ledger_service import get_ledger
from libs.automl import AutoMLGateway
from libs.models import OperationType
from services.dagster.automl_pipelines.lifecycle import poll_operations
from services.dagster.automl_pipelines.resources import MongoDBResource

logger = logging.getLogger(__name__)

router = APIRouter(tags=["operations"])


@router.get("/check")
async def check_operations(
    type: Optional[str] = Query(None),
    gateway: AutoMLGateway = Depends(get_automl_gateway),
    ledger: MongoDBResource = Depends(get_ledger),
) -> dict:
    """
    Refresh every pending operation of one type from the provider.

    Same poll the progress sensors run on their schedule. Completions reach
    the change feed and are advanced by the Dagster code.
    """
    if not type:
        raise HTTPException(status_code=404, detail="Operation `type` needed")
    try:
        kind = OperationType.parse(type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    summary = poll_operations(ledger, gateway, kind, logger)
    return {
        "success": f"{summary.examined} operations updated: {kind.value}",
        **summary.to_dict(),
    }
