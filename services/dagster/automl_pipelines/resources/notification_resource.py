# =============================================================================
# Notification Resource - Owner Push Notifications
# =============================================================================

import httpx
from dagster import ConfigurableResource
from pydantic import Field

from libs.notifications import OwnerNotifier


class NotificationResource(ConfigurableResource):
    """
    Dagster resource for push notifications to dataset owners.

    Configuration matches NotificationSettings from libs.models.config.
    """

    endpoint: str = Field("https://fcm.googleapis.com/fcm/send", description="FCM-compatible send endpoint")
    server_key: str = Field("", description="Server key for the endpoint")
    timeout_seconds: float = Field(10.0, description="HTTP timeout in seconds")

    def get_notifier(self) -> OwnerNotifier:
        return OwnerNotifier(
            httpx.Client(timeout=self.timeout_seconds),
            self.endpoint,
            self.server_key,
        )
