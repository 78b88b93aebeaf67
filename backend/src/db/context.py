"""
Database context over an asyncpg connection pool.

The pool is created lazily with no eager connections, so building the
application never requires a reachable database. Connectivity problems
surface on first use.
"""

import asyncio
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, List, Optional, Tuple

import asyncpg
import structlog

from backend.src.config import Settings
from backend.src.db.migrations import MigrationRunner

logger = structlog.get_logger(__name__)

# Errors that mean "cannot reach or log into the server"
CONNECTIVITY_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    ValueError,
)


class EntityTable(str, Enum):
    """Entity tables known to the diagnostics."""
    USUARIOS = "usuarios"
    PERFILES = "perfiles"
    PRODUCTOS = "productos"
    EMPRESAS = "empresas"


class DatabaseContext:
    """Connection pool plus the schema and statistics operations used at boot."""

    def __init__(
        self,
        connection_string: str,
        server_version_hint: Tuple[int, int] = (15, 0),
        min_size: int = 0,
        max_size: int = 10,
        command_timeout: Optional[float] = None,
        migrations_dir: Optional[Path] = None,
    ):
        """
        Initialize database context.

        Args:
            connection_string: libpq-style DSN
            server_version_hint: Oldest (major, minor) server version expected
            min_size: Connections opened when the pool is created
            max_size: Maximum pool size
            command_timeout: Per-statement timeout in seconds
            migrations_dir: Directory of *.sql migrations
        """
        self.connection_string = connection_string
        self.server_version_hint = server_version_hint
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.migrations = MigrationRunner(migrations_dir)
        self._pool: Optional[asyncpg.Pool] = None
        self._version_checked = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseContext":
        return cls(
            settings.connection_strings.default_connection,
            server_version_hint=settings.server_version_hint,
            min_size=settings.database_pool_min_size,
            max_size=settings.database_pool_max_size,
            command_timeout=settings.database_command_timeout,
            migrations_dir=Path(settings.migrations_directory) if settings.migrations_directory else None,
        )

    @property
    def safe_dsn(self) -> str:
        """Connection target without credentials, for logging."""
        return self.connection_string.split("@")[-1]

    # ========================================================================
    # Pool lifecycle
    # ========================================================================

    async def open(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
                init=self._check_server_version,
            )
            logger.info(
                "database_pool_initialized",
                database=self.safe_dsn,
                max_size=self.max_size,
                server_version_hint=".".join(str(p) for p in self.server_version_hint)
            )
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("database_pool_closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        pool = await self.open()
        async with pool.acquire() as conn:
            yield conn

    async def _check_server_version(self, conn: asyncpg.Connection) -> None:
        if self._version_checked:
            return
        self._version_checked = True

        version = conn.get_server_version()
        if (version.major, version.minor) < self.server_version_hint:
            logger.warning(
                "database_server_older_than_expected",
                server_version=f"{version.major}.{version.minor}",
                expected=".".join(str(p) for p in self.server_version_hint)
            )

    # ========================================================================
    # Connectivity
    # ========================================================================

    async def can_connect(self) -> bool:
        """
        Check whether the database accepts connections.

        Returns:
            True if a round trip succeeded, False on any connectivity error
        """
        try:
            async with self.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except CONNECTIVITY_ERRORS as e:
            logger.debug("database_connect_failed", database=self.safe_dsn, error=str(e))
            return False

    # ========================================================================
    # Migrations
    # ========================================================================

    async def get_applied_migrations(self) -> List[str]:
        async with self.acquire() as conn:
            return await self.migrations.get_applied(conn)

    async def get_pending_migrations(self) -> List[str]:
        async with self.acquire() as conn:
            return await self.migrations.get_pending(conn)

    async def migrate(self) -> List[str]:
        """
        Apply pending migrations.

        Raises:
            MigrationError: If a migration fails
        """
        async with self.acquire() as conn:
            return await self.migrations.apply_pending(conn)

    # ========================================================================
    # Statistics
    # ========================================================================

    async def count(self, table: EntityTable) -> int:
        """Count rows of one of the known entity tables."""
        table = EntityTable(table)
        async with self.acquire() as conn:
            return await conn.fetchval(f"SELECT COUNT(*) FROM {table.value}")
