"""Prometheus metrics definitions and helpers.

Provides the HTTP and database metrics of the backend service. Each
application instance owns its registry so several apps can coexist in
one process (tests, workers).
"""

from typing import Any, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class HttpMetrics:
    """Request metrics."""

    def __init__(self, registry: CollectorRegistry) -> None:
        """Initialize HTTP metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=registry,
        )

        # Route is unknown until routing runs, so only the method is tracked
        self.requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently in progress",
            ["method"],
            registry=registry,
        )


class DatabaseMetrics:
    """Startup diagnostic metrics."""

    def __init__(self, registry: CollectorRegistry) -> None:
        """Initialize database metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.table_rows = Gauge(
            "database_table_rows",
            "Row count per entity table at startup",
            ["table"],
            registry=registry,
        )

        self.pending_migrations = Gauge(
            "database_pending_migrations",
            "Pending migrations found at startup",
            registry=registry,
        )

        self.diagnostic_verified = Gauge(
            "startup_diagnostic_verified",
            "Outcome of the startup database diagnostic (1=verified, 0=failed)",
            registry=registry,
        )

    def record_diagnostic(self, report: Any) -> None:
        """Publish a startup DiagnosticReport."""
        self.diagnostic_verified.set(1 if report.is_verified else 0)
        self.pending_migrations.set(
            0 if report.migrations_applied else len(report.pending_migrations)
        )

        if report.statistics is not None:
            for table, rows in report.statistics.model_dump().items():
                self.table_rows.labels(table=table).set(rows)


class BackendMetrics:
    """All metrics of one application instance."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.http = HttpMetrics(self.registry)
        self.database = DatabaseMetrics(self.registry)

    def generate(self) -> bytes:
        return generate_latest(self.registry)


__all__ = [
    "CONTENT_TYPE_LATEST",
    "BackendMetrics",
    "DatabaseMetrics",
    "HttpMetrics",
]
