"""Prometheus scrape endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from backend.src.container import ServiceContainer
from backend.src.dependencies import get_services
from shared.metrics import CONTENT_TYPE_LATEST

router = APIRouter(tags=["Monitoring"])


@router.get("/metrics", include_in_schema=False)
async def metrics(services: ServiceContainer = Depends(get_services)) -> Response:
    """Expose this application's registry in Prometheus text format."""
    return Response(content=services.metrics.generate(), media_type=CONTENT_TYPE_LATEST)
