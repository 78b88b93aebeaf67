"""HTTP middleware: authentication, transport security and request logging."""

from backend.src.middleware.auth import (
    AuthenticationMiddleware,
    AuthorizationPolicy,
    extract_bearer_token,
)
from backend.src.middleware.request_logging import RequestLoggingMiddleware
from backend.src.middleware.security import HstsMiddleware, HttpsRedirectionMiddleware

__all__ = [
    "AuthenticationMiddleware",
    "AuthorizationPolicy",
    "HstsMiddleware",
    "HttpsRedirectionMiddleware",
    "RequestLoggingMiddleware",
    "extract_bearer_token",
]
