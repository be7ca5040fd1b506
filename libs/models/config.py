# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for all service configurations:
# - MinIOSettings: S3-compatible object storage holding the AutoML bucket
# - MongoSettings: MongoDB record store configuration
# - AutoMLSettings: ML provider REST API configuration
# - NotificationSettings: Push notification delivery configuration
# =============================================================================

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "MinIOSettings",
    "MongoSettings",
    "AutoMLSettings",
    "NotificationSettings",
]


# =============================================================================
# MinIO Settings (S3-Compatible Object Storage)
# =============================================================================

class MinIOSettings(BaseSettings):
    """
    Configuration for the object storage holding dataset images and exports.

    Any S3-compatible endpoint works, including the GCS interoperability API.

    Maps environment variables:
    - MINIO_ENDPOINT → endpoint
    - MINIO_ROOT_USER → access_key
    - MINIO_ROOT_PASSWORD → secret_key
    - MINIO_USE_SSL → use_ssl
    - AUTOML_BUCKET → bucket
    """

    endpoint: str = Field(..., validation_alias="MINIO_ENDPOINT", description="Storage endpoint (host:port)")
    access_key: str = Field(..., validation_alias="MINIO_ROOT_USER", description="Access key")
    secret_key: str = Field(..., validation_alias="MINIO_ROOT_PASSWORD", description="Secret key")
    use_ssl: bool = Field(False, validation_alias="MINIO_USE_SSL", description="Whether to use SSL/TLS")
    bucket: str = Field("automl-vcm", validation_alias="AUTOML_BUCKET", description="AutoML bucket name")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )


# =============================================================================
# MongoDB Settings (Record Store)
# =============================================================================

class MongoSettings(BaseSettings):
    """
    Configuration for MongoDB (record store).

    Maps environment variables:
    - MONGO_HOST → host
    - MONGO_PORT → port
    - MONGO_INITDB_ROOT_USERNAME → username
    - MONGO_INITDB_ROOT_PASSWORD → password
    - MONGO_DATABASE → database
    - MONGO_AUTH_SOURCE → auth_source
    """

    host: str = Field("mongodb", validation_alias="MONGO_HOST", description="MongoDB host")
    port: int = Field(27017, validation_alias="MONGO_PORT", description="MongoDB port")
    username: str = Field(..., validation_alias="MONGO_INITDB_ROOT_USERNAME", description="MongoDB username")
    password: str = Field(..., validation_alias="MONGO_INITDB_ROOT_PASSWORD", description="MongoDB password")
    database: str = Field("automl_training", validation_alias="MONGO_DATABASE", description="Database name")
    auth_source: str = Field("admin", validation_alias="MONGO_AUTH_SOURCE", description="Authentication source")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def connection_string(self) -> str:
        """
        Build MongoDB connection URI.

        Format: mongodb://[username]:[password]@[host]:[port]/[database]?authSource=[auth_source]
        """
        return (
            f"mongodb://{self.username}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?authSource={self.auth_source}"
        )


# =============================================================================
# AutoML Settings (ML Provider)
# =============================================================================

class AutoMLSettings(BaseSettings):
    """
    Configuration for the AutoML REST API.

    Maps environment variables:
    - AUTOML_PROJECT_ID → project_id
    - AUTOML_LOCATION → location
    - AUTOML_API_ROOT → api_root
    - AUTOML_ACCESS_TOKEN → access_token
    - AUTOML_DEFAULT_MODEL_TYPE → default_model_type
    - AUTOML_DEFAULT_TRAIN_BUDGET → default_train_budget
    - AUTOML_TIMEOUT_SECONDS → timeout_seconds
    """

    project_id: str = Field(..., validation_alias="AUTOML_PROJECT_ID", description="Cloud project ID")
    location: str = Field("us-central1", validation_alias="AUTOML_LOCATION", description="Provider location")
    api_root: str = Field(
        "https://automl.googleapis.com/v1beta1",
        validation_alias="AUTOML_API_ROOT",
        description="REST API root URL",
    )
    access_token: str = Field("", validation_alias="AUTOML_ACCESS_TOKEN", description="OAuth bearer token")
    default_model_type: str = Field(
        "mobile-high-accuracy-1",
        validation_alias="AUTOML_DEFAULT_MODEL_TYPE",
        description="Model type used when the caller does not pick one",
    )
    default_train_budget: int = Field(
        1, ge=1, validation_alias="AUTOML_DEFAULT_TRAIN_BUDGET", description="Default train budget"
    )
    timeout_seconds: float = Field(30.0, validation_alias="AUTOML_TIMEOUT_SECONDS", description="HTTP timeout")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# =============================================================================
# Notification Settings (Push Delivery)
# =============================================================================

class NotificationSettings(BaseSettings):
    """
    Configuration for owner push notifications.

    Maps environment variables:
    - NOTIFY_ENDPOINT → endpoint
    - NOTIFY_SERVER_KEY → server_key
    """

    endpoint: str = Field(
        "https://fcm.googleapis.com/fcm/send",
        validation_alias="NOTIFY_ENDPOINT",
        description="FCM-compatible send endpoint",
    )
    server_key: str = Field("", validation_alias="NOTIFY_SERVER_KEY", description="Server key for the endpoint")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )
