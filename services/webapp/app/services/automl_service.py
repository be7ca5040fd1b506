# =============================================================================
# AutoML Service - ML Provider Gateway
# =============================================================================
# Request-scoped AutoMLGateway for the webapp routes.
# =============================================================================

from typing import Iterator

from libs.automl import AutoMLGateway
from libs.models import AutoMLSettings


def get_automl_gateway() -> Iterator[AutoMLGateway]:
    """
    FastAPI dependency yielding a gateway for one request.

    The gateway's HTTP client is closed once the response is sent.
    """
    gateway = AutoMLGateway.from_settings(AutoMLSettings())
    try:
        yield gateway
    finally:
        gateway.close()
