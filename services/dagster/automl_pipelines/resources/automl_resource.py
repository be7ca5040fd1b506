# =============================================================================
# AutoML Resource - ML Provider Access
# =============================================================================
# Provides explicitly constructed AutoMLGateway instances to sensors and ops.
# =============================================================================

from dagster import ConfigurableResource
from pydantic import Field

from libs.automl import AutoMLGateway


class AutoMLResource(ConfigurableResource):
    """
    Dagster resource for the AutoML REST API.

    Configuration matches AutoMLSettings from libs.models.config.

    Attributes:
        project_id: Cloud project ID
        location: Provider location (default: "us-central1")
        api_root: REST API root URL
        access_token: OAuth bearer token
        default_model_type: Model type used when none is requested
        default_train_budget: Train budget used when none is requested
        timeout_seconds: HTTP timeout for each provider call
    """

    project_id: str = Field(..., description="Cloud project ID")
    location: str = Field("us-central1", description="Provider location")
    api_root: str = Field("https://automl.googleapis.com/v1beta1", description="REST API root URL")
    access_token: str = Field("", description="OAuth bearer token")
    default_model_type: str = Field("mobile-high-accuracy-1", description="Default model type")
    default_train_budget: int = Field(1, ge=1, description="Default train budget")
    timeout_seconds: float = Field(30.0, description="HTTP timeout in seconds")

    def get_gateway(self) -> AutoMLGateway:
        """
        Create a gateway with its own HTTP client.

        Callers own the gateway and should close it when done.
        """
        return AutoMLGateway.connect(
            self.project_id,
            location=self.location,
            api_root=self.api_root,
            access_token=self.access_token,
            timeout_seconds=self.timeout_seconds,
            default_model_type=self.default_model_type,
            default_train_budget=self.default_train_budget,
        )
