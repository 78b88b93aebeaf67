"""Health check models."""

from datetime import timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Health status, ordered from worst to best."""
    UNHEALTHY = "Unhealthy"
    DEGRADED = "Degraded"
    HEALTHY = "Healthy"

    @property
    def severity(self) -> int:
        return {"Unhealthy": 0, "Degraded": 1, "Healthy": 2}[self.value]


class HealthCheckResult(BaseModel):
    """Result returned by a single health check."""
    status: HealthStatus
    description: Optional[str] = None
    exception: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def healthy(cls, description: Optional[str] = None, **data: Any) -> "HealthCheckResult":
        return cls(status=HealthStatus.HEALTHY, description=description, data=data)

    @classmethod
    def unhealthy(
        cls,
        description: Optional[str] = None,
        exception: Optional[BaseException] = None,
        **data: Any
    ) -> "HealthCheckResult":
        return cls(
            status=HealthStatus.UNHEALTHY,
            description=description,
            exception=f"{type(exception).__name__}: {exception}" if exception is not None else None,
            data=data,
        )


class HealthReportEntry(BaseModel):
    """One named entry of a health report."""
    status: HealthStatus
    duration: timedelta
    description: Optional[str] = None
    exception: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)


class HealthReport(BaseModel):
    """Aggregated result of all registered checks."""
    status: HealthStatus
    total_duration: timedelta
    entries: Dict[str, HealthReportEntry] = Field(default_factory=dict)
