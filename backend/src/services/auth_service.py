"""
Authentication service for credential checks and JWT token management.

Provides:
- Password hashing and verification (passlib + bcrypt)
- JWT token creation with issuer, audience and lifetime
- JWT token validation (issuer, audience, lifetime, signature)
- User authentication and login
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from backend.src.config import Settings
from backend.src.exceptions import InvalidTokenError
from backend.src.models.auth import (
    LoginRequest,
    TokenPayload,
    TokenResponse,
    TokenValidationParameters,
)
from backend.src.models.usuario import UsuarioDB
from backend.src.repositories.usuario_repo import UsuarioRepository

logger = structlog.get_logger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        usuario_repo: UsuarioRepository,
        token_parameters: TokenValidationParameters,
        settings: Settings,
    ):
        """
        Initialize auth service.

        Args:
            usuario_repo: User repository
            token_parameters: Validation rules, also used when issuing tokens
            settings: Application settings
        """
        self.usuario_repo = usuario_repo
        self.token_parameters = token_parameters
        self.access_token_lifetime = timedelta(
            minutes=settings.jwt_settings.access_token_expire_minutes
        )

        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.password_bcrypt_rounds
        )

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password
        """
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Plain text password
            hashed_password: Hashed password

        Returns:
            True if password matches, False otherwise
        """
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning("password_verify_failed", error=str(e))
            return False

    def create_access_token(
        self,
        subject: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
        role: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a signed JWT access token.

        Args:
            subject: Subject claim (user ID)
            email: Email claim
            name: Display name claim
            role: Role claim
            expires_delta: Custom lifetime (defaults to the configured one)

        Returns:
            JWT token string
        """
        if expires_delta is None:
            expires_delta = self.access_token_lifetime

        now = datetime.now(timezone.utc)
        params = self.token_parameters

        payload: Dict[str, Any] = {
            "sub": str(subject),
            "iss": params.valid_issuer,
            "aud": params.valid_audience,
            "iat": int(now.timestamp()),
            "exp": int((now + expires_delta).timestamp()),
        }
        for claim, value in (("email", email), ("name", name), ("role", role)):
            if value is not None:
                payload[claim] = value

        token = jwt.encode(payload, params.issuer_signing_key, algorithm=params.algorithm)

        logger.info(
            "access_token_created",
            subject=str(subject),
            expires_in=expires_delta.total_seconds()
        )
        return token

    def validate_token(self, token: str) -> TokenPayload:
        """
        Validate a bearer token.

        Args:
            token: JWT token string

        Returns:
            Validated claims

        Raises:
            InvalidTokenError: If any of the issuer, audience, lifetime or
                signature checks fails
        """
        params = self.token_parameters
        options = {
            "verify_signature": params.validate_issuer_signing_key,
            "verify_iss": params.validate_issuer,
            "verify_aud": params.validate_audience,
            "verify_exp": params.validate_lifetime,
            "verify_nbf": params.validate_lifetime,
            "require_iss": params.validate_issuer,
            "require_aud": params.validate_audience,
            "require_exp": params.validate_lifetime,
            "leeway": int(params.clock_skew.total_seconds()),
        }

        try:
            claims = jwt.decode(
                token,
                params.issuer_signing_key,
                algorithms=[params.algorithm],
                audience=params.valid_audience,
                issuer=params.valid_issuer,
                options=options,
            )
        except ExpiredSignatureError as e:
            raise InvalidTokenError("The token is expired") from e
        except JWTError as e:
            raise InvalidTokenError(f"The token is invalid: {e}") from e

        if isinstance(claims.get("aud"), list):
            claims["aud"] = params.valid_audience

        try:
            return TokenPayload(**claims)
        except ValidationError as e:
            raise InvalidTokenError("The token is missing required claims") from e

    async def authenticate(self, email: str, password: str) -> Optional[UsuarioDB]:
        """
        Authenticate a user with email and password.

        Args:
            email: Account email
            password: Plain text password

        Returns:
            User if authenticated, None otherwise
        """
        usuario = await self.usuario_repo.get_by_email(email)

        if not usuario:
            logger.warning("authentication_failed_user_not_found", email=email)
            return None

        if not usuario.activo:
            logger.warning("authentication_failed_user_inactive", email=email)
            return None

        if not self.verify_password(password, usuario.password_hash):
            logger.warning("authentication_failed_invalid_password", email=email)
            return None

        logger.info("user_authenticated", usuario_id=usuario.id)
        return usuario

    async def login(self, login_request: LoginRequest) -> Optional[TokenResponse]:
        """
        Login user and create access token.

        Args:
            login_request: Login credentials

        Returns:
            Token response or None if authentication failed
        """
        usuario = await self.authenticate(login_request.email, login_request.password)

        if not usuario:
            return None

        access_token = self.create_access_token(
            subject=str(usuario.id),
            email=usuario.email,
            name=usuario.nombre,
        )

        return TokenResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=int(self.access_token_lifetime.total_seconds())
        )
