"""
Authentication models.

Provides Pydantic schemas for:
- Token validation parameters derived from configuration
- Login requests and token responses
- JWT payloads and the authenticated principal
"""

from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from backend.src.config import Settings
from backend.src.exceptions import ConfigurationError


# ============================================================================
# Token Validation Parameters
# ============================================================================


class TokenValidationParameters(BaseModel):
    """
    Rules applied to every bearer token.

    The signing key is captured once when the application is built and
    stays fixed for the lifetime of the process.
    """
    valid_issuer: str
    valid_audience: str
    issuer_signing_key: bytes
    algorithm: str = "HS256"
    clock_skew: timedelta = timedelta(minutes=5)

    validate_issuer: bool = True
    validate_audience: bool = True
    validate_lifetime: bool = True
    validate_issuer_signing_key: bool = True

    model_config = {
        "frozen": True
    }

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenValidationParameters":
        """
        Build validation parameters from the JwtSettings section.

        Raises:
            ConfigurationError: If issuer, audience or secret key is missing
        """
        jwt_settings = settings.jwt_settings

        missing = []
        if not jwt_settings.issuer:
            missing.append("JwtSettings:Issuer")
        if not jwt_settings.audience:
            missing.append("JwtSettings:Audience")
        if not jwt_settings.secret_key:
            missing.append("JwtSettings:SecretKey")

        if missing:
            raise ConfigurationError(
                f"JWT configuration incomplete. Missing: {', '.join(missing)}",
                {"missing": missing}
            )

        return cls(
            valid_issuer=jwt_settings.issuer,
            valid_audience=jwt_settings.audience,
            issuer_signing_key=jwt_settings.secret_key.encode("utf-8"),
            algorithm=jwt_settings.algorithm,
            clock_skew=timedelta(seconds=jwt_settings.clock_skew_seconds),
        )


# ============================================================================
# Request / Response Models
# ============================================================================


class LoginRequest(BaseModel):
    """Login request schema."""
    email: EmailStr = Field(
        ...,
        description="Account email"
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Account password"
    )


class TokenResponse(BaseModel):
    """JWT token response schema."""
    access_token: str = Field(
        ...,
        min_length=10,
        description="JWT access token"
    )
    token_type: str = Field(
        default="bearer",
        description="Token type"
    )
    expires_in: int = Field(
        ...,
        gt=0,
        description="Token expiration time in seconds"
    )


# ============================================================================
# Token Models
# ============================================================================


class TokenPayload(BaseModel):
    """Validated JWT claims."""
    sub: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    exp: int
    iat: Optional[int] = None
    iss: str
    aud: str


class CurrentUser(BaseModel):
    """
    Authenticated principal built from token claims.

    No database lookup is involved; the token is the source of truth
    for the duration of the request.
    """
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: TokenPayload) -> "CurrentUser":
        return cls(
            id=payload.sub,
            email=payload.email,
            name=payload.name,
            role=payload.role,
        )
