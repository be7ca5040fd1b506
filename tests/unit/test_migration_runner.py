"""
Unit tests for the MongoDB migration runner.

Discovery and loading run against temporary directories; applying runs
against mongomock.
"""

from pathlib import Path
from unittest.mock import MagicMock

import mongomock
import pytest

from scripts.migrate_db import (
    discover_migrations,
    load_migration_module,
    run_pending_migrations,
)

REPO_MIGRATIONS = Path(__file__).parent.parent.parent / "services" / "mongodb" / "migrations"


def _write_migration(directory: Path, filename: str, version: str, collection: str = "marker") -> None:
    (directory / filename).write_text(
        f'VERSION = "{version}"\n'
        "def up(db):\n"
        f'    db["{collection}"].insert_one({{"version": "{version}"}})\n'
    )


class TestMigrationDiscovery:
    """Test migration file discovery."""

    def test_discover_migrations_sorts_by_version(self, tmp_path):
        _write_migration(tmp_path, "010_third.py", "010")
        _write_migration(tmp_path, "001_first.py", "001")
        _write_migration(tmp_path, "002_second.py", "002")
        (tmp_path / "__init__.py").write_text("")
        (tmp_path / "invalid.py").write_text("")

        migrations = discover_migrations(tmp_path)

        assert [version for version, _ in migrations] == ["001", "002", "010"]

    def test_discover_migrations_raises_on_duplicate_versions(self, tmp_path):
        _write_migration(tmp_path, "001_first.py", "001")
        _write_migration(tmp_path, "001_duplicate.py", "001")

        with pytest.raises(ValueError, match="Duplicate migration version"):
            discover_migrations(tmp_path)

    def test_discover_migrations_raises_on_missing_directory(self):
        with pytest.raises(ValueError, match="does not exist"):
            discover_migrations(Path("/non/existent/path"))

    def test_repository_ships_baseline_migration(self):
        versions = [version for version, _ in discover_migrations(REPO_MIGRATIONS)]

        assert versions[0] == "001"


class TestMigrationLoading:
    """Test migration module loading."""

    def test_load_migration_module_valid(self, tmp_path):
        _write_migration(tmp_path, "001_test.py", "001")

        version, up_func = load_migration_module(tmp_path / "001_test.py")

        assert version == "001"
        assert callable(up_func)

    def test_load_migration_module_missing_version(self, tmp_path):
        (tmp_path / "001_test.py").write_text("def up(db): pass\n")

        with pytest.raises(ValueError, match="missing VERSION"):
            load_migration_module(tmp_path / "001_test.py")

    def test_load_migration_module_missing_up(self, tmp_path):
        (tmp_path / "001_test.py").write_text('VERSION = "001"\n')

        with pytest.raises(ValueError, match="missing up"):
            load_migration_module(tmp_path / "001_test.py")

    def test_load_migration_module_invalid_version_type(self, tmp_path):
        (tmp_path / "001_test.py").write_text("VERSION = 1\ndef up(db): pass\n")

        with pytest.raises(ValueError, match="VERSION must be a string"):
            load_migration_module(tmp_path / "001_test.py")


class TestRunPendingMigrations:
    """Test applying migrations against an in-memory database."""

    def test_applies_pending_in_order_and_records_versions(self, tmp_path):
        _write_migration(tmp_path, "001_first.py", "001")
        _write_migration(tmp_path, "002_second.py", "002")
        db = mongomock.MongoClient()["automl_training"]

        applied = run_pending_migrations(db, tmp_path)

        assert applied == ["001", "002"]
        assert [doc["version"] for doc in db.marker.find()] == ["001", "002"]
        assert {doc["version"] for doc in db.schema_migrations.find()} == {"001", "002"}

    def test_skips_already_applied_versions(self, tmp_path):
        _write_migration(tmp_path, "001_first.py", "001")
        _write_migration(tmp_path, "002_second.py", "002")
        db = mongomock.MongoClient()["automl_training"]
        db.schema_migrations.insert_one({"version": "001"})

        applied = run_pending_migrations(db, tmp_path)

        assert applied == ["002"]
        assert [doc["version"] for doc in db.marker.find()] == ["002"]

    def test_dry_run_applies_nothing(self, tmp_path):
        _write_migration(tmp_path, "001_first.py", "001")
        db = mongomock.MongoClient()["automl_training"]

        applied = run_pending_migrations(db, tmp_path, dry_run=True)

        assert applied == ["001"]
        assert db.marker.count_documents({}) == 0
        assert db.schema_migrations.count_documents({}) == 0

    def test_version_mismatch_raises(self, tmp_path):
        _write_migration(tmp_path, "002_wrong.py", "003")
        db = mongomock.MongoClient()["automl_training"]

        with pytest.raises(ValueError, match="does not match filename version"):
            run_pending_migrations(db, tmp_path)


class TestBaselineMigration:
    """Test the indexes the baseline migration declares."""

    def test_baseline_creates_lifecycle_indexes(self):
        _, up_func = load_migration_module(REPO_MIGRATIONS / "001_baseline_schema.py")
        db = MagicMock()

        up_func(db)

        db.operations.create_index.assert_any_call([("name", 1)], unique=True)
        db.operations.create_index.assert_any_call([("type", 1), ("done", 1)])
        db.operations.create_index.assert_any_call([("dataset_id", 1)])
        db.change_events.create_index.assert_any_call([("processed", 1), ("created_at", 1)])
        db.datasets.create_index.assert_any_call([("automlId", 1)])
        for collection in (db.labels, db.images, db.collaborators):
            collection.create_index.assert_any_call([("parent_key", 1)])
        db.models.create_index.assert_any_call([("dataset_id", 1)])
