"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    CONTENT_TYPE_LATEST,
    BackendMetrics,
    DatabaseMetrics,
    HttpMetrics,
)

__all__ = [
    "CONTENT_TYPE_LATEST",
    "BackendMetrics",
    "DatabaseMetrics",
    "HttpMetrics",
]
