"""
Schema migration runner.

Migrations are plain SQL files named with a sortable prefix
(e.g. 0001_initial_schema.sql) and tracked in the schema_migrations table.

Features:
- Applied/pending sets computed from the tracking table
- Checksum validation to detect modified migrations
- One transaction per migration, stopping at the first failure
"""

import hashlib
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import asyncpg
import structlog

from backend.src.exceptions import MigrationError

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "versions"

TRACKING_TABLE = "schema_migrations"

TRACKING_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TRACKING_TABLE} (
    migration_name VARCHAR(255) PRIMARY KEY,
    checksum VARCHAR(64) NOT NULL,
    execution_time_ms INTEGER NOT NULL DEFAULT 0,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


@dataclass(frozen=True)
class Migration:
    """A migration script on disk."""

    name: str
    path: Path
    checksum: str

    def read_sql(self) -> str:
        return self.path.read_text(encoding="utf-8")


def calculate_file_checksum(filepath: Path) -> str:
    """
    Calculate SHA-256 checksum of a file.

    Args:
        filepath: Path to the file

    Returns:
        Hex digest of the file's checksum
    """
    sha256_hash = hashlib.sha256()
    with open(filepath, "rb") as f:
        for byte_block in iter(lambda: f.read(4096), b""):
            sha256_hash.update(byte_block)
    return sha256_hash.hexdigest()


def discover_migrations(directory: Path) -> List[Migration]:
    """
    List migration scripts in name order.

    Args:
        directory: Directory containing *.sql files

    Returns:
        Migrations sorted by file name
    """
    if not directory.exists():
        logger.warning("migrations_directory_not_found", directory=str(directory))
        return []

    return [
        Migration(name=path.stem, path=path, checksum=calculate_file_checksum(path))
        for path in sorted(directory.glob("*.sql"))
    ]


def compute_pending(discovered: Sequence[Migration], applied: Iterable[str]) -> List[Migration]:
    """Migrations not yet applied, in discovery order."""
    applied_names = set(applied)
    return [m for m in discovered if m.name not in applied_names]


class MigrationRunner:
    """Reads and applies migrations on a single connection."""

    def __init__(self, migrations_dir: Optional[Path] = None):
        self.migrations_dir = Path(migrations_dir) if migrations_dir else MIGRATIONS_DIR

    def discover(self) -> List[Migration]:
        return discover_migrations(self.migrations_dir)

    async def tracking_table_exists(self, conn: asyncpg.Connection) -> bool:
        return await conn.fetchval("SELECT to_regclass($1)", TRACKING_TABLE) is not None

    async def get_applied_checksums(self, conn: asyncpg.Connection) -> Dict[str, str]:
        """
        Applied migrations with their recorded checksums.

        Returns an empty mapping when the tracking table does not exist yet.
        """
        if not await self.tracking_table_exists(conn):
            return {}

        rows = await conn.fetch(
            f"SELECT migration_name, checksum FROM {TRACKING_TABLE} ORDER BY migration_name"
        )
        return {row["migration_name"]: row["checksum"] for row in rows}

    async def get_applied(self, conn: asyncpg.Connection) -> List[str]:
        return list((await self.get_applied_checksums(conn)).keys())

    async def get_pending(self, conn: asyncpg.Connection) -> List[str]:
        applied = await self.get_applied(conn)
        return [m.name for m in compute_pending(self.discover(), applied)]

    async def apply_pending(self, conn: asyncpg.Connection) -> List[str]:
        """
        Apply every pending migration.

        Args:
            conn: Database connection

        Returns:
            Names of the migrations applied by this call (empty if none were pending)

        Raises:
            MigrationError: On the first migration that fails
        """
        discovered = self.discover()
        applied = await self.get_applied_checksums(conn)

        for migration in discovered:
            stored = applied.get(migration.name)
            if stored is not None and stored != migration.checksum:
                logger.warning(
                    "migration_modified_after_apply",
                    migration=migration.name,
                    stored_checksum=stored,
                    current_checksum=migration.checksum
                )

        pending = compute_pending(discovered, applied)
        if not pending:
            return []

        await conn.execute(TRACKING_TABLE_SQL)

        completed = []
        for migration in pending:
            logger.info("migration_running", migration=migration.name)
            start_time = time.perf_counter()

            try:
                async with conn.transaction():
                    await conn.execute(migration.read_sql())
                    execution_time_ms = int((time.perf_counter() - start_time) * 1000)
                    await conn.execute(
                        f"""
                        INSERT INTO {TRACKING_TABLE} (migration_name, checksum, execution_time_ms)
                        VALUES ($1, $2, $3)
                        """,
                        migration.name,
                        migration.checksum,
                        execution_time_ms
                    )
            except asyncpg.PostgresError as e:
                logger.error("migration_failed", migration=migration.name, error=str(e))
                raise MigrationError(migration.name, str(e)) from e

            logger.info(
                "migration_completed",
                migration=migration.name,
                execution_time_ms=execution_time_ms
            )
            completed.append(migration.name)

        return completed
