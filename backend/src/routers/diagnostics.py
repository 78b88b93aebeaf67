"""
Diagnostic API endpoints.

Provides:
- GET /api/ping: static liveness payload, never touches the database
- GET /api/database-check: connectivity and row counts, probed on every call
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from backend.src.config import Settings
from backend.src.db.context import DatabaseContext, EntityTable
from backend.src.dependencies import get_db_context, get_settings_dependency
from backend.src.models.responses import (
    DatabaseCheckResponse,
    DatabaseStatistics,
    PingResponse,
    ProblemDetails,
)

logger = structlog.get_logger(__name__)

PROBLEM_JSON = "application/problem+json"

router = APIRouter(prefix="/api", tags=["Diagnostics"])


@router.get("/ping", response_model=PingResponse)
async def ping(settings: Settings = Depends(get_settings_dependency)) -> PingResponse:
    """Report that the API process is up."""
    return PingResponse(
        timestamp=datetime.now(timezone.utc),
        database=settings.database_display_name,
        environment=settings.environment_name,
    )


@router.get(
    "/database-check",
    response_model=DatabaseCheckResponse,
    responses={500: {"model": ProblemDetails, "description": "Database check failed"}},
)
async def database_check(
    request: Request,
    db: DatabaseContext = Depends(get_db_context),
    settings: Settings = Depends(get_settings_dependency),
):
    """
    Probe the database and report user and profile counts.

    Returns:
        Connectivity report, or a problem document with status 500 when a
        query fails
    """
    try:
        can_connect = await db.can_connect()
        usuarios = await db.count(EntityTable.USUARIOS)
        perfiles = await db.count(EntityTable.PERFILES)
    except Exception as e:
        logger.error(
            "database_check_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        detail = "An error occurred while checking the database." if settings.is_production else str(e)
        problem = ProblemDetails(
            title="Database check failed",
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            instance=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=problem.model_dump(exclude_none=True),
            media_type=PROBLEM_JSON,
        )

    return DatabaseCheckResponse(
        status="Connected" if can_connect else "Disconnected",
        database=settings.database_display_name,
        timestamp=datetime.now(timezone.utc),
        statistics=DatabaseStatistics(usuarios=usuarios, perfiles=perfiles),
        message="Database connection is working" if can_connect else "Database is not reachable",
    )
