"""
Capability contracts of the registered services.

Handlers and controllers depend on these protocols rather than on the
concrete classes, so tests can substitute lightweight doubles.
"""

from datetime import timedelta
from typing import Awaitable, Callable, List, Optional, Protocol

from backend.src.models.auth import LoginRequest, TokenPayload, TokenResponse
from backend.src.models.health import HealthCheckResult
from backend.src.models.usuario import UsuarioResponse


class AuthServiceProtocol(Protocol):
    """Token issuance and validation."""

    def create_access_token(
        self,
        subject: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
        role: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        ...

    def validate_token(self, token: str) -> TokenPayload:
        ...

    async def login(self, login_request: LoginRequest) -> Optional[TokenResponse]:
        ...


class UsuarioServiceProtocol(Protocol):
    """User management."""

    async def list_usuarios(self, limit: int = 50, offset: int = 0) -> List[UsuarioResponse]:
        ...

    async def get_usuario(self, usuario_id: int) -> Optional[UsuarioResponse]:
        ...

    async def count_usuarios(self) -> int:
        ...


HealthCheck = Callable[[], Awaitable[HealthCheckResult]]
