"""
JWT bearer authentication and authorization.

Authentication never rejects a request: it validates the bearer token,
when one is presented, and records the outcome on request.state.
Authorization runs per endpoint and turns a missing or invalid token
into 401 Unauthorized with a WWW-Authenticate challenge.
"""

from typing import Callable, Optional

import structlog
from fastapi import HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from backend.src.exceptions import InvalidTokenError
from backend.src.models.auth import CurrentUser
from backend.src.services.interfaces import AuthServiceProtocol

logger = structlog.get_logger(__name__)

BEARER_SCHEME = "Bearer"


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an Authorization header value.

    Args:
        authorization: Raw header value

    Returns:
        Token, or None if the header is absent or not a bearer credential
    """
    if not authorization:
        return None

    parts = authorization.split()

    if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME.lower():
        return None

    return parts[1]


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Resolves the bearer token of every request.

    Sets request.state.user to the CurrentUser on success. When a token
    was presented but failed validation, request.state.auth_error holds
    the reason.
    """

    def __init__(self, app, auth_service: AuthServiceProtocol):
        """
        Initialize authentication middleware.

        Args:
            app: ASGI application
            auth_service: Service validating the tokens
        """
        super().__init__(app)
        self.auth_service = auth_service

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.user = None
        request.state.auth_error = None

        token = extract_bearer_token(request.headers.get("Authorization"))

        if token is not None:
            try:
                payload = self.auth_service.validate_token(token)
            except InvalidTokenError as e:
                request.state.auth_error = e.message
                logger.info(
                    "bearer_token_rejected",
                    path=request.url.path,
                    method=request.method,
                    reason=e.message
                )
            else:
                request.state.user = CurrentUser.from_payload(payload)
                logger.debug(
                    "request_authenticated",
                    path=request.url.path,
                    user_id=payload.sub
                )

        return await call_next(request)


class AuthorizationPolicy:
    """Default policy: the request must carry a valid bearer token."""

    def evaluate(self, request: Request) -> CurrentUser:
        """
        Return the authenticated user.

        Raises:
            HTTPException: 401 with a bearer challenge when no valid token
                was presented
        """
        user: Optional[CurrentUser] = getattr(request.state, "user", None)
        if user is not None:
            return user

        auth_error: Optional[str] = getattr(request.state, "auth_error", None)

        if auth_error is None:
            challenge = BEARER_SCHEME
            detail = "Not authenticated"
        else:
            description = auth_error.replace('"', "'")
            challenge = f'{BEARER_SCHEME} error="invalid_token", error_description="{description}"'
            detail = auth_error

        logger.warning(
            "authorization_failed",
            path=request.url.path,
            method=request.method,
            reason=detail
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": challenge}
        )
