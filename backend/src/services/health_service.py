"""
Health check registry and report rendering.

Checks are registered by name and run sequentially. The report is
rendered in the health-checks UI JSON format:

    {
        "status": "Healthy",
        "totalDuration": "00:00:00.0031250",
        "entries": {
            "postgresql": {
                "data": {},
                "duration": "00:00:00.0029870",
                "status": "Healthy",
                "tags": ["db"]
            }
        }
    }
"""

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog
from fastapi import status
from fastapi.responses import JSONResponse

from backend.src.db.context import DatabaseContext
from backend.src.models.health import (
    HealthCheckResult,
    HealthReport,
    HealthReportEntry,
    HealthStatus,
)
from backend.src.services.interfaces import HealthCheck

logger = structlog.get_logger(__name__)


@dataclass
class HealthCheckRegistration:
    """A named check and its tags."""

    name: str
    check: HealthCheck
    tags: List[str] = field(default_factory=list)


class DatabaseHealthCheck:
    """Probes the database with a round trip."""

    def __init__(self, db: DatabaseContext):
        self.db = db

    async def __call__(self) -> HealthCheckResult:
        if await self.db.can_connect():
            return HealthCheckResult.healthy()
        return HealthCheckResult.unhealthy(description="Database is not reachable")


class HealthCheckService:
    """Runs registered checks and aggregates their results."""

    def __init__(self):
        self._registrations: Dict[str, HealthCheckRegistration] = {}

    @property
    def names(self) -> List[str]:
        return list(self._registrations)

    def add_check(
        self,
        name: str,
        check: HealthCheck,
        tags: Optional[List[str]] = None
    ) -> "HealthCheckService":
        """
        Register a check.

        Args:
            name: Unique check name
            check: Async callable returning a HealthCheckResult
            tags: Optional tags reported with the entry

        Returns:
            The service, for chaining

        Raises:
            ValueError: If the name is already registered
        """
        if name in self._registrations:
            raise ValueError(f"Health check '{name}' is already registered")
        self._registrations[name] = HealthCheckRegistration(name, check, list(tags or []))
        return self

    async def check(self) -> HealthReport:
        """Run every check and build the report."""
        entries: Dict[str, HealthReportEntry] = {}
        started = time.perf_counter()

        for registration in self._registrations.values():
            check_started = time.perf_counter()
            try:
                result = await registration.check()
            except Exception as e:
                logger.error("health_check_failed", check=registration.name, error=str(e))
                result = HealthCheckResult.unhealthy(description=str(e), exception=e)

            entries[registration.name] = HealthReportEntry(
                status=result.status,
                duration=timedelta(seconds=time.perf_counter() - check_started),
                description=result.description,
                exception=result.exception,
                data=result.data,
                tags=registration.tags,
            )

        overall = min(
            (entry.status for entry in entries.values()),
            key=lambda s: s.severity,
            default=HealthStatus.HEALTHY,
        )

        return HealthReport(
            status=overall,
            total_duration=timedelta(seconds=time.perf_counter() - started),
            entries=entries,
        )


def format_duration(duration: timedelta) -> str:
    """Format a duration as hh:mm:ss.fffffff (100 ns ticks)."""
    microseconds = (duration.days * 86400 + duration.seconds) * 1_000_000 + duration.microseconds
    hours, remainder = divmod(microseconds, 3_600_000_000)
    minutes, remainder = divmod(remainder, 60_000_000)
    seconds, fraction = divmod(remainder, 1_000_000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{fraction * 10:07d}"


def health_report_body(report: HealthReport) -> Dict[str, Any]:
    """Serialize a report in the UI JSON format."""
    entries = {}
    for name, entry in report.entries.items():
        body: Dict[str, Any] = {"data": entry.data}
        if entry.description is not None:
            body["description"] = entry.description
        body["duration"] = format_duration(entry.duration)
        if entry.exception is not None:
            body["exception"] = entry.exception
        body["status"] = entry.status.value
        body["tags"] = entry.tags
        entries[name] = body

    return {
        "status": report.status.value,
        "totalDuration": format_duration(report.total_duration),
        "entries": entries,
    }


def write_health_check_ui_response(report: HealthReport) -> JSONResponse:
    """HTTP response for a report: 503 when unhealthy, 200 otherwise."""
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if report.status == HealthStatus.UNHEALTHY
        else status.HTTP_200_OK
    )
    return JSONResponse(status_code=status_code, content=health_report_body(report))
