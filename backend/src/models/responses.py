"""
Response schemas for the diagnostic endpoints.

ProblemDetails follows RFC 7807 (application/problem+json).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PingResponse(BaseModel):
    """Static liveness payload of GET /api/ping."""
    message: str = Field(default="API is running")
    timestamp: datetime
    status: str = Field(default="OK")
    database: str
    environment: str


class DatabaseStatistics(BaseModel):
    """Row counts reported by GET /api/database-check."""
    usuarios: int = Field(..., ge=0)
    perfiles: int = Field(..., ge=0)


class DatabaseCheckResponse(BaseModel):
    """Connectivity report of GET /api/database-check."""
    status: str = Field(..., description="Connected or Disconnected")
    database: str
    timestamp: datetime
    statistics: DatabaseStatistics
    message: str


class ProblemDetails(BaseModel):
    """RFC 7807 problem document."""
    type: str = Field(default="https://tools.ietf.org/html/rfc9110#section-15.6.1")
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
