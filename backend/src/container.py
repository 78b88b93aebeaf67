"""
Composition root of the application.

Everything the request pipeline needs is built once at startup and held
by a ServiceContainer stored on app.state. Handlers reach it through the
dependencies module; there are no module-level singletons.
"""

from dataclasses import dataclass

from backend.src.config import Settings
from backend.src.db.context import DatabaseContext
from backend.src.middleware.auth import AuthorizationPolicy
from backend.src.models.auth import TokenValidationParameters
from backend.src.services.health_service import HealthCheckService
from backend.src.services.interfaces import AuthServiceProtocol, UsuarioServiceProtocol
from shared.metrics import BackendMetrics


@dataclass
class ServiceContainer:
    """Services registered for the lifetime of one application instance."""

    settings: Settings
    db: DatabaseContext
    token_parameters: TokenValidationParameters
    auth_service: AuthServiceProtocol
    usuario_service: UsuarioServiceProtocol
    health_checks: HealthCheckService
    authorization: AuthorizationPolicy
    metrics: BackendMetrics
