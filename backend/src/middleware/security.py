"""Transport security middleware: HSTS and HTTPS redirection."""

from typing import Callable, Optional

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse, Response

logger = structlog.get_logger(__name__)

LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "[::1]"}


class HstsMiddleware(BaseHTTPMiddleware):
    """
    Adds Strict-Transport-Security to HTTPS responses.

    Loopback hosts are excluded so local browsers do not pin HTTPS.
    """

    def __init__(self, app, max_age: int = 2592000, include_subdomains: bool = False):
        super().__init__(app)
        value = f"max-age={max_age}"
        if include_subdomains:
            value += "; includeSubDomains"
        self.header_value = value

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        host = (request.url.hostname or "").lower()
        if request.url.scheme == "https" and host not in LOOPBACK_HOSTS:
            response.headers["Strict-Transport-Security"] = self.header_value

        return response


class HttpsRedirectionMiddleware(BaseHTTPMiddleware):
    """
    Redirects plain HTTP requests to HTTPS with 307.

    Without a configured HTTPS port the redirect target is unknown, so
    requests pass through unchanged.
    """

    def __init__(self, app, https_port: Optional[int] = None):
        super().__init__(app)
        self.https_port = https_port
        if https_port is None:
            logger.warning("https_redirect_port_not_configured")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self.https_port is None or request.url.scheme in ("https", "wss"):
            return await call_next(request)

        netloc = request.url.hostname or ""
        if ":" in netloc:
            netloc = f"[{netloc}]"
        if self.https_port != 443:
            netloc = f"{netloc}:{self.https_port}"

        target = request.url.replace(scheme="https", netloc=netloc)
        return RedirectResponse(str(target), status_code=307)
