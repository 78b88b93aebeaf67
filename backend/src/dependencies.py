"""
FastAPI dependencies resolving registered services.

All dependencies read the ServiceContainer stored on app.state by
create_app, so each application instance is self-contained and tests
can build apps with their own doubles.
"""

from fastapi import Depends, Request

from backend.src.config import Settings
from backend.src.container import ServiceContainer
from backend.src.db.context import DatabaseContext
from backend.src.models.auth import CurrentUser
from backend.src.services.health_service import HealthCheckService
from backend.src.services.interfaces import UsuarioServiceProtocol


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_settings_dependency(services: ServiceContainer = Depends(get_services)) -> Settings:
    return services.settings


def get_db_context(services: ServiceContainer = Depends(get_services)) -> DatabaseContext:
    return services.db


def get_health_checks(services: ServiceContainer = Depends(get_services)) -> HealthCheckService:
    return services.health_checks


def get_usuario_service(services: ServiceContainer = Depends(get_services)) -> UsuarioServiceProtocol:
    return services.usuario_service


async def require_user(
    request: Request,
    services: ServiceContainer = Depends(get_services)
) -> CurrentUser:
    """
    Require a valid bearer token.

    Usage:
        @router.get("/usuarios")
        async def list_usuarios(user: CurrentUser = Depends(require_user)):
            ...

    Raises:
        HTTPException: 401 if the request is not authenticated
    """
    return services.authorization.evaluate(request)
