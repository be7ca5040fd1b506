# =============================================================================
# Owner Notifications
# =============================================================================
# Push notification delivery to a dataset owner's device through an
# FCM-compatible HTTP endpoint.
# =============================================================================

"""Push notification delivery."""

import logging
from typing import Optional

import httpx

from libs.errors import ProviderError
from libs.models import NotificationSettings

__all__ = ["OwnerNotifier", "TRAINING_COMPLETE_TITLE", "training_complete_body"]

logger = logging.getLogger(__name__)

TRAINING_COMPLETE_TITLE = "Training Complete"


def training_complete_body(dataset_name: str) -> str:
    return (
        f"Dataset: {dataset_name} has been trained successfully & can now be "
        "used for inference"
    )


class OwnerNotifier:
    """Sends one notification per device token."""

    def __init__(self, client: httpx.Client, endpoint: str, server_key: str = "") -> None:
        self._client = client
        self.endpoint = endpoint
        self.server_key = server_key

    @classmethod
    def from_settings(cls, settings: NotificationSettings, timeout: float = 10.0) -> "OwnerNotifier":
        return cls(httpx.Client(timeout=timeout), settings.endpoint, settings.server_key)

    def close(self) -> None:
        self._client.close()

    def send_to_device(self, token: str, title: str, body: str, data: Optional[dict] = None) -> dict:
        """
        Deliver a notification to one device.

        Raises:
            ProviderError: If delivery fails or the endpoint rejects it
        """
        headers = {"Content-Type": "application/json"}
        if self.server_key:
            headers["Authorization"] = f"key={self.server_key}"

        message: dict = {"to": token, "notification": {"title": title, "body": body}}
        if data:
            message["data"] = data

        try:
            response = self._client.post(self.endpoint, json=message, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Notification delivery failed: {exc}") from exc

        if response.is_error:
            raise ProviderError(
                f"Notification endpoint returned {response.status_code}",
                status_code=response.status_code,
                payload=response.text,
            )
        logger.debug("Delivered notification '%s'", title)
        return response.json() if response.content else {}
