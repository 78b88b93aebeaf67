"""
HTTP request pipeline.

The order of steps is fixed:

    production:   exception_handler, hsts
    otherwise:    developer_exception_page, cors
    always:       https_redirection, static_files, routing,
                  authentication, authorization

Starlette runs the middleware added last first, so middleware is added
here in reverse request order.
"""

import html
import os
import traceback
from typing import List

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.src.config import Settings
from backend.src.controllers import HomeController, default_registry
from backend.src.middleware import (
    AuthenticationMiddleware,
    HstsMiddleware,
    HttpsRedirectionMiddleware,
    RequestLoggingMiddleware,
)

logger = structlog.get_logger(__name__)

CORS_POLICY_NAME = "AllowAll"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions, keeping challenge and Allow headers."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors."""
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())}
    )


async def production_exception_handler(request: Request, exc: Exception) -> HTMLResponse:
    """Render the generic error page without exception details."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc
    )
    return await HomeController().error(request)


async def developer_exception_page(request: Request, exc: Exception) -> HTMLResponse:
    """Render the exception with its traceback."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc
    )
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    content = (
        "<!DOCTYPE html>\n<html lang=\"en\">\n<head><meta charset=\"utf-8\" />"
        "<title>Unhandled exception</title></head>\n<body>\n"
        f"<h1>An unhandled exception occurred while processing the request.</h1>\n"
        f"<h2>{html.escape(type(exc).__name__)}: {html.escape(str(exc))}</h2>\n"
        f"<p>{html.escape(request.method)} {html.escape(request.url.path)}</p>\n"
        f"<pre>{html.escape(trace)}</pre>\n</body>\n</html>\n"
    )
    return HTMLResponse(content, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def configure_pipeline(app: FastAPI, settings: Settings) -> List[str]:
    """
    Install middleware, exception handlers, static files and the default
    controller route on an app whose endpoints are already registered.

    Args:
        app: Application with app.state.services set
        settings: Application settings

    Returns:
        Ordered pipeline step names, also stored on app.state.pipeline
    """
    services = app.state.services
    steps: List[str] = []

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    if settings.is_production:
        app.add_exception_handler(Exception, production_exception_handler)
        steps += ["exception_handler", "hsts"]
    else:
        app.add_exception_handler(Exception, developer_exception_page)
        steps += ["developer_exception_page", "cors"]

    steps.append("https_redirection")

    static_directory = settings.static_directory
    if os.path.isdir(static_directory):
        app.mount("/static", StaticFiles(directory=static_directory), name="static")
    else:
        logger.warning("static_directory_missing", directory=static_directory)
    steps.append("static_files")

    for route in default_registry().routes():
        app.router.routes.append(route)
    steps.append("routing")

    # Innermost first
    app.add_middleware(AuthenticationMiddleware, auth_service=services.auth_service)
    steps += ["authentication", "authorization"]

    app.add_middleware(HttpsRedirectionMiddleware, https_port=settings.https_port)

    if settings.is_production:
        app.add_middleware(HstsMiddleware, max_age=settings.hsts_max_age)
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info("cors_policy_attached", policy=CORS_POLICY_NAME)

    app.add_middleware(RequestLoggingMiddleware, metrics=services.metrics.http)

    app.state.pipeline = steps
    logger.info("pipeline_configured", steps=steps, environment=settings.environment)
    return steps
