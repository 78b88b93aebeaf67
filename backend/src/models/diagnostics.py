"""
Startup diagnostic models.

The diagnostic never raises: its outcome is carried by DiagnosticReport,
with the outer result (verified or failed, with a cause) and the inner
statistics result (an optional warning) kept separate.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DiagnosticState(str, Enum):
    """States of the linear startup diagnostic."""
    CONNECTING = "connecting"
    CHECKING_MIGRATIONS = "checking_migrations"
    MIGRATING = "migrating"
    CHECKING_STATS = "checking_stats"
    VERIFIED = "verified"
    FAILED = "failed"


class DiagnosticOutcome(str, Enum):
    """Outer result of the diagnostic."""
    VERIFIED = "verified"
    FAILED = "failed"


class RowCountSnapshot(BaseModel):
    """Row counts of the four entity tables, read once at boot."""
    usuarios: int = Field(..., ge=0)
    perfiles: int = Field(..., ge=0)
    productos: int = Field(..., ge=0)
    empresas: int = Field(..., ge=0)


class DiagnosticReport(BaseModel):
    """Result of one startup diagnostic run."""
    outcome: DiagnosticOutcome
    state: DiagnosticState
    cause: Optional[str] = None
    can_connect: bool = False
    applied_migrations: int = 0
    pending_migrations: List[str] = Field(default_factory=list)
    migrations_applied: bool = False
    statistics: Optional[RowCountSnapshot] = None
    stats_warning: Optional[str] = None

    @property
    def is_verified(self) -> bool:
        return self.outcome == DiagnosticOutcome.VERIFIED
