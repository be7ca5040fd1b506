# =============================================================================
# MongoDB Schema Migration Runner
# =============================================================================
# Applies the AutoML record store migrations in services/mongodb/migrations/
# in version order. Applied versions are tracked in schema_migrations, so
# running the script twice is a no-op.
#
# Usage:
#     python scripts/migrate_db.py
#     python scripts/migrate_db.py --dry-run
# =============================================================================

import argparse
import importlib.util
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import CollectionInvalid, OperationFailure

from libs.models import MongoSettings

MIGRATIONS_COLLECTION = "schema_migrations"
CONTAINER_MIGRATIONS_DIR = Path("/app/services/mongodb/migrations")


def discover_migrations(migrations_dir: Path) -> list[tuple[str, Path]]:
    """
    Find migration files named NNN_*.py, where NNN is a zero-padded version.

    Args:
        migrations_dir: Directory holding migration files

    Returns:
        (version, file_path) tuples sorted by version

    Raises:
        ValueError: If the directory is missing or two files share a version
    """
    if not migrations_dir.exists():
        raise ValueError(f"Migrations directory does not exist: {migrations_dir}")

    migrations = []
    seen_versions = set()

    for file_path in migrations_dir.glob("*.py"):
        filename = file_path.name
        if filename.startswith("__"):
            continue

        if not filename[0:3].isdigit():
            print(f"Warning: Skipping file '{filename}' - does not start with 3-digit version", file=sys.stderr)
            continue

        version = filename[0:3]
        if version in seen_versions:
            raise ValueError(f"Duplicate migration version '{version}' found in '{filename}'")
        seen_versions.add(version)
        migrations.append((version, file_path))

    # Zero-padded versions sort lexicographically
    migrations.sort(key=lambda item: item[0])
    return migrations


def load_migration_module(file_path: Path) -> tuple[str, Callable[[Database], None]]:
    """
    Import a migration file and return its VERSION and up() function.

    Raises:
        ImportError: If the file cannot be imported
        ValueError: If VERSION or up() is missing or has the wrong type
    """
    spec = importlib.util.spec_from_file_location(f"migration_{file_path.stem}", file_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load migration module from {file_path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    if not hasattr(module, "VERSION"):
        raise ValueError(f"Migration '{file_path.name}' missing VERSION constant")
    version = module.VERSION
    if not isinstance(version, str):
        raise ValueError(f"Migration '{file_path.name}' VERSION must be a string, got {type(version).__name__}")

    if not hasattr(module, "up"):
        raise ValueError(f"Migration '{file_path.name}' missing up() function")
    up_func = module.up
    if not callable(up_func):
        raise ValueError(f"Migration '{file_path.name}' up must be callable, got {type(up_func).__name__}")

    return version, up_func


def ensure_schema_migrations_collection(db: Database) -> None:
    """Create schema_migrations with a unique version index if needed."""
    try:
        db.create_collection(MIGRATIONS_COLLECTION)
    except CollectionInvalid:
        pass

    try:
        db[MIGRATIONS_COLLECTION].create_index("version", unique=True)
    except OperationFailure:
        pass


def get_applied_versions(db: Database) -> set[str]:
    return {doc["version"] for doc in db[MIGRATIONS_COLLECTION].find({}, {"version": 1})}


def apply_migration(db: Database, version: str, up_func: Callable[[Database], None]) -> int:
    """
    Run one migration and record it.

    A failed migration is not recorded, so the next run retries it.

    Returns:
        Duration in milliseconds
    """
    start_time = time.time()
    try:
        up_func(db)
    except Exception as e:
        print(f"Migration {version} failed: {e}", file=sys.stderr)
        raise

    duration_ms = int((time.time() - start_time) * 1000)
    db[MIGRATIONS_COLLECTION].insert_one(
        {
            "version": version,
            "applied_at": datetime.now(timezone.utc),
            "duration_ms": duration_ms,
        }
    )
    print(f"Applied migration {version} (took {duration_ms}ms)")
    return duration_ms


def run_pending_migrations(db: Database, migrations_dir: Path, dry_run: bool = False) -> list[str]:
    """
    Apply every migration not yet recorded in schema_migrations.

    Args:
        db: Target database
        migrations_dir: Directory holding migration files
        dry_run: Only report what would be applied

    Returns:
        Versions applied (or that would be applied in a dry run), in order

    Raises:
        ValueError: If a file's VERSION does not match its filename
    """
    ensure_schema_migrations_collection(db)
    migrations = discover_migrations(migrations_dir)
    print(f"Discovered {len(migrations)} migration(s)")

    applied_versions = get_applied_versions(db)
    pending = []
    for version, file_path in migrations:
        if version in applied_versions:
            print(f"Skipping migration {version}: already applied")
            continue

        migration_version, up_func = load_migration_module(file_path)
        if migration_version != version:
            raise ValueError(
                f"Migration '{file_path.name}' VERSION '{migration_version}' "
                f"does not match filename version '{version}'"
            )

        pending.append(version)
        if dry_run:
            print(f"Would apply migration {version} from {file_path.name}")
            continue

        print(f"Applying migration {version} from {file_path.name}...")
        apply_migration(db, version, up_func)

    return pending


def default_migrations_dir() -> Path:
    """Repository checkout first, then the container layout."""
    local_dir = Path(__file__).resolve().parent.parent / "services" / "mongodb" / "migrations"
    return local_dir if local_dir.exists() else CONTAINER_MIGRATIONS_DIR


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Apply AutoML record store migrations")
    parser.add_argument("--dry-run", action="store_true", help="List pending migrations only")
    parser.add_argument("--migrations-dir", type=Path, default=None, help="Override the migrations directory")
    args = parser.parse_args(argv)

    try:
        settings = MongoSettings()
        client = MongoClient(settings.connection_string, serverSelectionTimeoutMS=10000)
        try:
            db = client[settings.database]
            migrations_dir = args.migrations_dir or default_migrations_dir()
            pending = run_pending_migrations(db, migrations_dir, dry_run=args.dry_run)
        finally:
            client.close()
    except Exception as e:
        print(f"Migration failed: {e}", file=sys.stderr)
        return 1

    if not pending:
        print("Database schema is up to date")
    elif args.dry_run:
        print(f"{len(pending)} migration(s) pending")
    else:
        print("All migrations applied successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
