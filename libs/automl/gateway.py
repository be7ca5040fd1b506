# =============================================================================
# AutoML Gateway - ML Provider REST API Client
# =============================================================================
# Wraps the provider's long-running operations (import, train, export) behind
# a uniform submit -> handle -> status contract. Instances are constructed
# explicitly and injected; there is no module-level client.
# =============================================================================

import inspect
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from libs.errors import InvalidInputError, NotFoundError, ProviderError
from libs.models import (
    AutoMLSettings,
    OperationHandle,
    OperationStatus,
    OperationType,
    validate_dataset_name,
)

__all__ = ["AutoMLGateway", "extract_id_from_name", "model_version_name"]

logger = logging.getLogger(__name__)

MOBILE_MODEL_PREFIX = "mobile-"
EXPORT_MODEL_FORMAT = "tflite"

_FRACTION = re.compile(r"\.(\d+)")


def extract_id_from_name(resource_name: str) -> str:
    """
    Return the trailing ID of a provider resource name.

    Examples:
        >>> extract_id_from_name("projects/1/locations/us-central1/datasets/ICN42")
        'ICN42'
    """
    return resource_name.rstrip("/").split("/")[-1]


def model_version_name(now: Optional[datetime] = None) -> str:
    """Display name for a new model, e.g. ``v20190319213002``."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("v%Y%m%d%H%M%S")


def _parse_create_time(value: str | None) -> datetime:
    # Provider timestamps carry up to nanosecond precision and a trailing Z
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    value = value.replace("Z", "+00:00")
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AutoMLGateway:
    """
    Client for the AutoML REST API.

    Every submission returns an OperationHandle; completion is observed later
    through status(). A not-done status is a normal outcome.

    Errors:
    - NotFoundError: the provider answered 404, or a referenced dataset/model
      does not exist
    - ProviderError: transport failure or any other non-2xx answer
    - InvalidInputError: the request was rejected before reaching the provider
    """

    def __init__(
        self,
        client: httpx.Client,
        project_id: str,
        location: str = "us-central1",
        *,
        default_model_type: str = "mobile-high-accuracy-1",
        default_train_budget: int = 1,
    ) -> None:
        self._client = client
        self.project_id = project_id
        self.location = location
        self.default_model_type = default_model_type
        self.default_train_budget = default_train_budget

    @classmethod
    def connect(
        cls,
        project_id: str,
        *,
        location: str = "us-central1",
        api_root: str = "https://automl.googleapis.com/v1beta1",
        access_token: str = "",
        timeout_seconds: float = 30.0,
        default_model_type: str = "mobile-high-accuracy-1",
        default_train_budget: int = 1,
    ) -> "AutoMLGateway":
        """Build a gateway that owns its own HTTP client."""
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        client = httpx.Client(base_url=api_root, headers=headers, timeout=timeout_seconds)
        return cls(
            client,
            project_id,
            location,
            default_model_type=default_model_type,
            default_train_budget=default_train_budget,
        )

    @classmethod
    def from_settings(cls, settings: AutoMLSettings) -> "AutoMLGateway":
        return cls.connect(
            settings.project_id,
            location=settings.location,
            api_root=settings.api_root,
            access_token=settings.access_token,
            timeout_seconds=settings.timeout_seconds,
            default_model_type=settings.default_model_type,
            default_train_budget=settings.default_train_budget,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "AutoMLGateway":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def parent(self) -> str:
        """Location resource name all datasets and models live under."""
        return f"projects/{self.project_id}/locations/{self.location}"

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> dict:
        try:
            response = self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            raise ProviderError(f"{method} {path} failed: {exc}") from exc

        payload = self._payload(response)
        if response.status_code == 404:
            raise NotFoundError(f"{path} not found")
        if response.is_error:
            error = payload.get("error")
            message = error.get("message") if isinstance(error, dict) else None
            raise ProviderError(
                message or f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )
        return payload

    def _list_all(self, path: str, key: str) -> list[dict]:
        """Follow nextPageToken until the provider returns the last page."""
        items: list[dict] = []
        params: dict = {}
        while True:
            payload = self._request("GET", path, params=params or None)
            items.extend(payload.get(key) or [])
            token = payload.get("nextPageToken")
            if not token:
                return items
            params = {"pageToken": token}

    @staticmethod
    def _payload(response: httpx.Response) -> dict:
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {"raw": response.text}
        return data if isinstance(data, dict) else {"data": data}

    @staticmethod
    def _handle(payload: dict) -> OperationHandle:
        if not payload.get("name"):
            raise ProviderError("Provider response carries no operation name", payload=payload)
        return OperationHandle.from_response(payload)

    # ------------------------------------------------------------------
    # Datasets
    # ------------------------------------------------------------------

    def list_datasets(self) -> list[dict]:
        return self._list_all(f"{self.parent}/datasets", "datasets")

    def create_dataset(self, display_name: str) -> dict:
        """
        Create an image classification dataset.

        Raises:
            InvalidInputError: If the display name has characters outside [a-zA-Z_0-9]
        """
        try:
            validate_dataset_name(display_name)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc

        logger.info("Creating dataset %s", display_name)
        return self._request(
            "POST",
            f"{self.parent}/datasets",
            json={
                "displayName": display_name,
                "imageClassificationDatasetMetadata": {"classificationType": "MULTICLASS"},
            },
        )

    def get_dataset_name(self, automl_id: str) -> str:
        """
        Resolve a dataset ID to its full resource name.

        Raises:
            NotFoundError: If no dataset has this ID
        """
        for dataset in self.list_datasets():
            name = dataset.get("name", "")
            if extract_id_from_name(name) == automl_id:
                return name
        raise NotFoundError(f"No dataset found for id: {automl_id}")

    def delete_dataset(self, automl_id: str) -> OperationHandle:
        name = self.get_dataset_name(automl_id)
        logger.info("Deleting dataset %s", name)
        return self._handle(self._request("DELETE", name))

    # ------------------------------------------------------------------
    # Long-running operations
    # ------------------------------------------------------------------

    def import_data(self, dataset_id: str, input_uri: str) -> OperationHandle:
        """Start importing a label manifest (gs:// URI) into a dataset."""
        name = self.get_dataset_name(dataset_id)
        logger.info("Importing %s into %s", input_uri, name)
        payload = self._request(
            "POST",
            f"{name}:importData",
            json={"inputConfig": {"gcsSource": {"inputUris": [input_uri]}}},
        )
        return self._handle(payload)

    def train(
        self,
        dataset_id: str,
        train_budget: Optional[int] = None,
        model_type: Optional[str] = None,
    ) -> OperationHandle:
        """Start training a new model for a dataset."""
        self.get_dataset_name(dataset_id)
        train_budget = self.default_train_budget if train_budget is None else train_budget
        model_type = model_type or self.default_model_type
        logger.info(
            "Training dataset %s with train budget %s and model type %s",
            dataset_id,
            train_budget,
            model_type,
        )
        payload = self._request(
            "POST",
            f"{self.parent}/models",
            json={
                "displayName": model_version_name(),
                "datasetId": dataset_id,
                "imageClassificationModelMetadata": {
                    "trainBudget": train_budget,
                    "modelType": model_type,
                },
            },
        )
        return self._handle(payload)

    def list_models(self) -> list[dict]:
        return self._list_all(f"{self.parent}/models", "model")

    def latest_model(self, dataset_id: str) -> dict:
        """
        Most recently created on-device model of a dataset.

        Raises:
            NotFoundError: If the dataset has no mobile models
        """
        candidates = [
            model
            for model in self.list_models()
            if model.get("datasetId") == dataset_id
            and str(
                (model.get("imageClassificationModelMetadata") or {}).get("modelType", "")
            ).startswith(MOBILE_MODEL_PREFIX)
        ]
        if not candidates:
            raise NotFoundError(f"No models found for dataset: {dataset_id}")
        return max(candidates, key=lambda model: _parse_create_time(model.get("createTime")))

    def export_model(self, model_id: str, gcs_path: str) -> OperationHandle:
        """Export a model in tflite format under a gs:// prefix."""
        logger.info("Exporting model %s to %s", model_id, gcs_path)
        payload = self._request(
            "POST",
            f"{self.parent}/models/{model_id}:export",
            json={
                "output_config": {
                    "model_format": EXPORT_MODEL_FORMAT,
                    "gcs_destination": {"output_uri_prefix": gcs_path},
                }
            },
        )
        return self._handle(payload)

    def export_latest_model(self, dataset_id: str, gcs_path: str) -> OperationHandle:
        model = self.latest_model(dataset_id)
        return self.export_model(extract_id_from_name(model.get("name", "")), gcs_path)

    def submit(self, kind: OperationType, params: dict[str, Any]) -> OperationHandle:
        """
        Submit a long-running operation of the given kind.

        Params by kind:
        - IMPORT_DATA: dataset_id, input_uri
        - TRAIN_MODEL: dataset_id, train_budget?, model_type?
        - EXPORT_MODEL: dataset_id, gcs_path
        """
        submitters = {
            OperationType.IMPORT_DATA: self.import_data,
            OperationType.TRAIN_MODEL: self.train,
            OperationType.EXPORT_MODEL: self.export_latest_model,
        }
        submitter = submitters[OperationType(kind)]
        try:
            inspect.signature(submitter).bind(**params)
        except TypeError as exc:
            raise InvalidInputError(f"Invalid parameters for {kind}: {exc}") from exc
        return submitter(**params)

    def status(self, handle: str | OperationHandle) -> OperationStatus:
        """
        Query the status of an operation.

        Raises:
            NotFoundError: If the provider no longer knows the handle
            ProviderError: On transport or server failure
        """
        name = handle.name if isinstance(handle, OperationHandle) else handle
        payload = self._request("GET", name)
        payload.setdefault("name", name)
        return OperationStatus.from_response(payload)
