"""Unit tests for storage path helpers."""

import pytest

from libs.storage_paths import (
    build_storage_uri,
    dataset_images_prefix,
    dataset_storage_prefix,
    export_destination,
    export_prefix,
    label_manifest_key,
    parse_storage_uri,
)


class TestParseStorageUri:
    def test_valid_uri(self):
        assert parse_storage_uri("gs://automl-vcm/flowers/labels.csv") == ("automl-vcm", "flowers/labels.csv")

    @pytest.mark.parametrize(
        "uri",
        ["s3://automl-vcm/key", "gs://automl-vcm", "gs://automl-vcm/", "gs:///key", "automl-vcm/key"],
    )
    def test_invalid_uri(self, uri):
        with pytest.raises(ValueError, match="Invalid storage URI"):
            parse_storage_uri(uri)


class TestLayout:
    def test_build_storage_uri_strips_leading_slash(self):
        assert build_storage_uri("b", "/datasets/x.jpg") == "gs://b/datasets/x.jpg"

    def test_dataset_images_prefix(self):
        assert dataset_images_prefix("flowers") == "datasets/flowers/"

    def test_dataset_storage_prefix_excludes_siblings(self):
        prefix = dataset_storage_prefix("cat")
        assert "cat/labels.csv".startswith(prefix)
        assert not "cats/labels.csv".startswith(prefix)

    def test_label_manifest_key(self):
        assert label_manifest_key("flowers") == "flowers/labels.csv"

    def test_export_prefix(self):
        assert export_prefix("ICN123") == "models/on-device/ICN123/"

    def test_export_destination_is_deterministic(self):
        assert export_destination("automl-vcm", "ICN123") == "gs://automl-vcm/models/on-device/ICN123"
