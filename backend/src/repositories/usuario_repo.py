"""
User repository for database operations.

Provides async read operations on the usuarios table using asyncpg.
"""

from typing import List, Optional

import asyncpg
import structlog

from backend.src.db.context import DatabaseContext, EntityTable
from backend.src.models.usuario import UsuarioDB

logger = structlog.get_logger(__name__)

USUARIO_COLUMNS = "id, nombre, email, password_hash, perfil_id, empresa_id, activo, created_at"


class UsuarioRepository:
    """Repository for usuarios rows."""

    def __init__(self, db: DatabaseContext):
        """
        Initialize user repository.

        Args:
            db: Database context
        """
        self.db = db

    @staticmethod
    def _to_model(row: asyncpg.Record) -> UsuarioDB:
        return UsuarioDB(**dict(row))

    async def get_by_id(self, usuario_id: int) -> Optional[UsuarioDB]:
        """
        Get user by ID.

        Args:
            usuario_id: User ID

        Returns:
            User or None if not found
        """
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USUARIO_COLUMNS} FROM usuarios WHERE id = $1",
                usuario_id
            )

        if not row:
            logger.debug("usuario_not_found", usuario_id=usuario_id)
            return None

        return self._to_model(row)

    async def get_by_email(self, email: str) -> Optional[UsuarioDB]:
        """
        Get user by email (case-insensitive).

        Args:
            email: Email address

        Returns:
            User or None if not found
        """
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USUARIO_COLUMNS} FROM usuarios WHERE lower(email) = lower($1)",
                email
            )

        return self._to_model(row) if row else None

    async def list_usuarios(self, limit: int = 100, offset: int = 0) -> List[UsuarioDB]:
        """
        List users ordered by ID.

        Args:
            limit: Maximum number of rows
            offset: Rows to skip

        Returns:
            Users in the requested page
        """
        async with self.db.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {USUARIO_COLUMNS} FROM usuarios ORDER BY id LIMIT $1 OFFSET $2",
                limit,
                offset
            )

        return [self._to_model(row) for row in rows]

    async def count(self) -> int:
        return await self.db.count(EntityTable.USUARIOS)
