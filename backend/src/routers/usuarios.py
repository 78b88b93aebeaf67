"""
User API endpoints.

Provides:
- GET /api/usuarios: paginated user list, bearer token required
"""

import structlog
from fastapi import APIRouter, Depends, Query, status

from backend.src.dependencies import get_usuario_service, require_user
from backend.src.models.auth import CurrentUser
from backend.src.models.usuario import UsuarioListResponse
from backend.src.services.interfaces import UsuarioServiceProtocol
from backend.src.services.usuario_service import MAX_PAGE_SIZE

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Usuarios"])


@router.get(
    "/usuarios",
    response_model=UsuarioListResponse,
    status_code=status.HTTP_200_OK,
    summary="List Usuarios",
    description="""
    Get a page of users and the total user count.

    **Authentication:** Required (bearer token)

    **Query Parameters:**
    - limit: Maximum number of users to return (1-100, default: 50)
    - offset: Number of users to skip (default: 0)

    **Error Responses:**
    - 401: Not authenticated
    """,
)
async def list_usuarios(
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(require_user),
    usuario_service: UsuarioServiceProtocol = Depends(get_usuario_service),
) -> UsuarioListResponse:
    items = await usuario_service.list_usuarios(limit=limit, offset=offset)
    total = await usuario_service.count_usuarios()

    logger.info("usuarios_listed_via_api", user_id=user.id, returned=len(items), total=total)

    return UsuarioListResponse(items=items, total=total, limit=limit, offset=offset)
