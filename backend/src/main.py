"""
Backend application factory.

Startup sequence:
1. Build the service container (database context, auth, users, health)
2. Register endpoints and configure the request pipeline
3. Lifespan: run the startup database diagnostic once, before the server
   accepts requests; the diagnostic never prevents startup
4. Shutdown: close the connection pool

Run with:
    python -m backend.src.main
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
import uvicorn
from fastapi import FastAPI

from backend.src import __version__
from backend.src.config import Settings, get_settings
from backend.src.container import ServiceContainer
from backend.src.db.context import DatabaseContext
from backend.src.middleware.auth import AuthorizationPolicy
from backend.src.models.auth import TokenValidationParameters
from backend.src.pipeline import configure_pipeline
from backend.src.repositories.usuario_repo import UsuarioRepository
from backend.src.routers import diagnostics, health, metrics, usuarios
from backend.src.services.auth_service import AuthService
from backend.src.services.health_service import DatabaseHealthCheck, HealthCheckService
from backend.src.services.startup_diagnostic import StartupDiagnostic
from backend.src.services.usuario_service import UsuarioService
from shared.logging import configure_logging
from shared.metrics import BackendMetrics

logger = structlog.get_logger(__name__)


def build_services(settings: Settings, db_context: Optional[DatabaseContext] = None) -> ServiceContainer:
    """
    Register the application services.

    Args:
        settings: Application settings
        db_context: Database context to use instead of one built from the
            connection string

    Returns:
        Service container

    Raises:
        ConfigurationError: If the JWT settings are incomplete
    """
    token_parameters = TokenValidationParameters.from_settings(settings)

    db = db_context if db_context is not None else DatabaseContext.from_settings(settings)
    usuario_repo = UsuarioRepository(db)

    health_checks = HealthCheckService().add_check(
        settings.database_display_name.lower(),
        DatabaseHealthCheck(db),
        tags=["db", "ready"]
    )

    return ServiceContainer(
        settings=settings,
        db=db,
        token_parameters=token_parameters,
        auth_service=AuthService(usuario_repo, token_parameters, settings),
        usuario_service=UsuarioService(usuario_repo),
        health_checks=health_checks,
        authorization=AuthorizationPolicy(),
        metrics=BackendMetrics(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Run the startup diagnostic, then close the pool on shutdown."""
    services: ServiceContainer = app.state.services
    settings = services.settings

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    diagnostic = StartupDiagnostic(services.db, settings.database_display_name)
    report = await diagnostic.run()
    app.state.startup_report = report
    services.metrics.database.record_diagnostic(report)

    logger.info(
        "application_started",
        database_verified=report.is_verified,
        pipeline=app.state.pipeline
    )

    try:
        yield
    finally:
        logger.info("application_shutting_down")
        await services.db.close()
        logger.info("application_shutdown_complete")


def create_app(
    settings: Optional[Settings] = None,
    db_context: Optional[DatabaseContext] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use (defaults to the cached settings)
        db_context: Database context override

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.log_format == "json",
        app_name=settings.app_name,
        environment=settings.environment,
    )

    services = build_services(settings, db_context)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version or __version__,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.startup_report = None

    app.include_router(health.router)
    app.include_router(diagnostics.router)
    app.include_router(usuarios.router)
    if settings.metrics_enabled:
        app.include_router(metrics.router)

    configure_pipeline(app, settings)
    return app


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "backend.src.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
