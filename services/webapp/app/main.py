# =============================================================================
# FastAPI Main Application
# =============================================================================
# Entry point for the AutoML training API.
# =============================================================================

from fastapi import FastAPI

from app import __version__
from app.errors import register_error_handlers
from app.routers import automl, health, labels, operations, records

# Application instance
app = FastAPI(
    title="AutoML Training API",
    description="Create datasets, start imports and training, and manage dataset records.",
    version=__version__,
)

register_error_handlers(app)

# Include routers
app.include_router(health.router)
app.include_router(automl.router)
app.include_router(operations.router)
app.include_router(labels.router)
app.include_router(records.router)
