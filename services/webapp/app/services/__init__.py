# =============================================================================
# Services Module
# =============================================================================
# Shared clients for the AutoML provider, MongoDB records and object storage.
# =============================================================================

from app.services.automl_service import get_automl_gateway
from app.services.ledger_service import get_ledger, get_storage

__all__ = [
    # AutoML
    "get_automl_gateway",
    # Records and storage
    "get_ledger",
    "get_storage",
]
