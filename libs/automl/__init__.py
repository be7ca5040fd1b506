# =============================================================================
# AutoML Provider Library
# =============================================================================
# Gateway to the ML provider's REST API, shared by Dagster and the webapp.
# =============================================================================

"""ML provider gateway."""

from .gateway import AutoMLGateway, extract_id_from_name, model_version_name

__all__ = ["AutoMLGateway", "extract_id_from_name", "model_version_name"]
