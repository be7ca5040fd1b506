"""Unit tests for owner push notifications."""

import json

import httpx
import pytest

from libs.errors import ProviderError
from libs.models import NotificationSettings
from libs.notifications import TRAINING_COMPLETE_TITLE, OwnerNotifier, training_complete_body

ENDPOINT = "https://push.test/send"


def _notifier(handler, server_key="server-key"):
    return OwnerNotifier(httpx.Client(transport=httpx.MockTransport(handler)), ENDPOINT, server_key)


def test_training_complete_body():
    assert training_complete_body("flowers") == (
        "Dataset: flowers has been trained successfully & can now be used for inference"
    )


def test_send_to_device_posts_notification():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"success": 1})

    notifier = _notifier(handler)
    result = notifier.send_to_device("device-1", TRAINING_COMPLETE_TITLE, "body", data={"datasetId": "ICN1"})

    assert result == {"success": 1}
    request = seen[0]
    assert str(request.url) == ENDPOINT
    assert request.headers["Authorization"] == "key=server-key"
    assert json.loads(request.content) == {
        "to": "device-1",
        "notification": {"title": "Training Complete", "body": "body"},
        "data": {"datasetId": "ICN1"},
    }


def test_send_without_server_key_omits_authorization():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200)

    assert _notifier(handler, server_key="").send_to_device("device-1", "t", "b") == {}
    assert "Authorization" not in seen[0].headers


def test_rejected_delivery_raises_provider_error():
    notifier = _notifier(lambda request: httpx.Response(401, text="unauthorized"))

    with pytest.raises(ProviderError) as excinfo:
        notifier.send_to_device("device-1", "t", "b")

    assert excinfo.value.status_code == 401


def test_transport_failure_raises_provider_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(ProviderError, match="delivery failed"):
        _notifier(handler).send_to_device("device-1", "t", "b")


def test_from_settings(monkeypatch):
    monkeypatch.setenv("NOTIFY_ENDPOINT", ENDPOINT)
    monkeypatch.setenv("NOTIFY_SERVER_KEY", "k")

    notifier = OwnerNotifier.from_settings(NotificationSettings())

    assert notifier.endpoint == ENDPOINT
    assert notifier.server_key == "k"
    notifier.close()
