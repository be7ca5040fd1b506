# =============================================================================
# Export Resolution
# =============================================================================
# Pure selection logic for model exports written by the provider to
# models/on-device/{dataset_id}/{timestamp}_tflite/...
# =============================================================================

"""
Export resolution helpers.

The provider names each export folder after its creation time, e.g.
``2019-03-19_21-30-02-757_tflite``. These helpers pick the latest folder and
locate the model weights and label map inside it. Storage access lives with
the caller; everything here works on plain object keys.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Sequence

from libs.errors import AmbiguousArtifactError, ExportParseError, NotFoundError
from libs.storage_paths import export_prefix

__all__ = [
    "EXPORT_FOLDER_SUFFIX",
    "MODEL_FILE_SUFFIX",
    "LABELS_FILE_SUFFIX",
    "ExportArtifact",
    "parse_export_folder",
    "export_folder_of",
    "select_latest_export",
    "find_single_artifact",
    "resolve_export",
]

EXPORT_FOLDER_SUFFIX = "_tflite"
MODEL_FILE_SUFFIX = "model.tflite"
LABELS_FILE_SUFFIX = "dict.txt"

# yyyy-MM-dd_HH-mm-ss-SSS
_TIMESTAMP_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})_(\d{2})-(\d{2})-(\d{2})-(\d{3})"
)

# models/on-device/{dataset_id}/{folder}/...
_FOLDER_SEGMENT = 3


@dataclass(frozen=True)
class ExportArtifact:
    """A resolved export: the model weights and label map of one folder."""

    dataset_id: str
    folder: str
    model: str
    label: str
    generated_at: datetime


def parse_export_folder(folder: str) -> datetime:
    """
    Parse an export folder name into a UTC timestamp.

    Args:
        folder: Folder name, e.g. "2019-03-19_21-30-02-757_tflite"

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        ExportParseError: If the name does not follow yyyy-MM-dd_HH-mm-ss-SSS_tflite

    Examples:
        >>> parse_export_folder("2019-03-19_21-30-02-757_tflite")
        datetime.datetime(2019, 3, 19, 21, 30, 2, 757000, tzinfo=datetime.timezone.utc)
    """
    if not folder.endswith(EXPORT_FOLDER_SUFFIX):
        raise ExportParseError(f"Export folder name lacks the '{EXPORT_FOLDER_SUFFIX}' suffix: '{folder}'")

    match = _TIMESTAMP_PATTERN.fullmatch(folder[: -len(EXPORT_FOLDER_SUFFIX)])
    if not match:
        raise ExportParseError(f"Unable to parse export folder name: '{folder}'")

    year, month, day, hour, minute, second, millis = (int(part) for part in match.groups())
    try:
        return datetime(
            year, month, day, hour, minute, second, millis * 1000, tzinfo=timezone.utc
        )
    except ValueError as exc:
        raise ExportParseError(f"Unable to parse export folder name: '{folder}': {exc}") from exc


def export_folder_of(key: str) -> str | None:
    """Return the export folder segment of an object key, if it has one."""
    parts = key.split("/")
    if len(parts) <= _FOLDER_SEGMENT or not parts[_FOLDER_SEGMENT]:
        return None
    return parts[_FOLDER_SEGMENT]


def select_latest_export(folders: Iterable[str]) -> tuple[str, datetime]:
    """
    Select the folder with the latest timestamp.

    Every candidate is parsed before selection, so a single malformed name
    fails the whole selection. Equal timestamps are resolved arbitrarily.

    Raises:
        NotFoundError: If there are no candidate folders
        ExportParseError: If any folder name is malformed
    """
    parsed = [(folder, parse_export_folder(folder)) for folder in dict.fromkeys(folders)]
    if not parsed:
        raise NotFoundError("No export folders found")

    parsed.sort(key=lambda item: item[1], reverse=True)
    return parsed[0]


def find_single_artifact(keys: Sequence[str], suffix: str) -> str:
    """
    Return the only key ending with the given suffix.

    Raises:
        AmbiguousArtifactError: If zero or more than one key matches
    """
    matches = [key for key in keys if key.endswith(suffix)]
    if len(matches) != 1:
        raise AmbiguousArtifactError(
            f"Expected exactly one file matching '*{suffix}', found {len(matches)}: {matches}"
        )
    return matches[0]


def resolve_export(keys: Iterable[str], dataset_id: str) -> ExportArtifact:
    """
    Resolve the latest export for a dataset from a listing of object keys.

    Args:
        keys: Object keys listed under models/on-device/{dataset_id}/
        dataset_id: Provider dataset ID the export belongs to

    Returns:
        ExportArtifact pointing at the model weights and label map

    Raises:
        NotFoundError: If the listing holds no export folders
        ExportParseError: If any folder name is malformed
        AmbiguousArtifactError: If the latest folder lacks exactly one
            model file or exactly one label file
    """
    prefix = export_prefix(dataset_id)
    keys = [key for key in keys if key.startswith(prefix)]

    folders = [folder for folder in (export_folder_of(key) for key in keys) if folder]
    if not folders:
        raise NotFoundError(f"No exports found in {prefix}")

    folder, generated_at = select_latest_export(folders)
    folder_keys = [key for key in keys if export_folder_of(key) == folder]

    return ExportArtifact(
        dataset_id=dataset_id,
        folder=folder,
        model=find_single_artifact(folder_keys, MODEL_FILE_SUFFIX),
        label=find_single_artifact(folder_keys, LABELS_FILE_SUFFIX),
        generated_at=generated_at,
    )
