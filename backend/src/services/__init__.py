"""Backend services."""

from backend.src.services.auth_service import AuthService
from backend.src.services.health_service import DatabaseHealthCheck, HealthCheckService
from backend.src.services.startup_diagnostic import StartupDiagnostic
from backend.src.services.usuario_service import UsuarioService

__all__ = [
    "AuthService",
    "DatabaseHealthCheck",
    "HealthCheckService",
    "StartupDiagnostic",
    "UsuarioService",
]
