"""
Health endpoints.

/health and /health/ready run the same registered checks and render the
same UI-formatted report.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from backend.src.dependencies import get_health_checks
from backend.src.services.health_service import HealthCheckService, write_health_check_ui_response

router = APIRouter(tags=["Health"])


@router.get("/health", response_class=JSONResponse)
async def health(health_checks: HealthCheckService = Depends(get_health_checks)) -> JSONResponse:
    """Run all health checks; 503 when any of them is unhealthy."""
    report = await health_checks.check()
    return write_health_check_ui_response(report)


@router.get("/health/ready", response_class=JSONResponse)
async def health_ready(health_checks: HealthCheckService = Depends(get_health_checks)) -> JSONResponse:
    report = await health_checks.check()
    return write_health_check_ui_response(report)
