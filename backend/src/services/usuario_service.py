"""User management service."""

from typing import List, Optional

import structlog

from backend.src.models.usuario import UsuarioResponse
from backend.src.repositories.usuario_repo import UsuarioRepository

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100


class UsuarioService:
    """Read-side user management backed by the usuarios table."""

    def __init__(self, usuario_repo: UsuarioRepository):
        self.usuario_repo = usuario_repo

    async def list_usuarios(self, limit: int = 50, offset: int = 0) -> List[UsuarioResponse]:
        """
        List users, clamping the page to 1..100 rows.

        Args:
            limit: Maximum number of users
            offset: Number of users to skip

        Returns:
            Users without credentials
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)

        usuarios = await self.usuario_repo.list_usuarios(limit=limit, offset=offset)
        logger.debug("usuarios_listed", count=len(usuarios), limit=limit, offset=offset)
        return [UsuarioResponse.from_db(u) for u in usuarios]

    async def get_usuario(self, usuario_id: int) -> Optional[UsuarioResponse]:
        usuario = await self.usuario_repo.get_by_id(usuario_id)
        return UsuarioResponse.from_db(usuario) if usuario else None

    async def count_usuarios(self) -> int:
        return await self.usuario_repo.count()
