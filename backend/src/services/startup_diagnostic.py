"""
Startup database diagnostic.

Runs once before the server accepts requests:

    CONNECTING -> CHECKING_MIGRATIONS -> [MIGRATING] -> CHECKING_STATS -> VERIFIED
                                                                       \\-> FAILED

The diagnostic never raises. An unreachable database or a failed
migration marks the report FAILED and startup continues, so /api/ping
stays available. A failed statistics query only adds a warning.
"""

from typing import Any, Optional

import structlog

from backend.src.db.context import DatabaseContext, EntityTable
from backend.src.models.diagnostics import (
    DiagnosticOutcome,
    DiagnosticReport,
    DiagnosticState,
    RowCountSnapshot,
)


class StartupDiagnostic:
    """Verifies connectivity, applies pending migrations and logs row counts."""

    def __init__(self, db: DatabaseContext, database_name: str, logger: Optional[Any] = None):
        """
        Initialize the diagnostic.

        Args:
            db: Database context to verify
            database_name: Display name used in log entries
            logger: structlog logger (defaults to this module's logger)
        """
        self.db = db
        self.database_name = database_name
        self.log = logger if logger is not None else structlog.get_logger(__name__)

    async def run(self) -> DiagnosticReport:
        """
        Run the diagnostic to completion.

        Returns:
            Report with the outer outcome and, when it was reached, the
            statistics result
        """
        report = DiagnosticReport(outcome=DiagnosticOutcome.FAILED, state=DiagnosticState.CONNECTING)
        self.log.info("database_verification_started", database=self.database_name)

        try:
            report.can_connect = await self.db.can_connect()
            self.log.info(
                "database_connectivity_checked",
                database=self.database_name,
                can_connect=report.can_connect
            )

            if not report.can_connect:
                self.log.error(
                    "database_unreachable",
                    database=self.database_name,
                    target=self.db.safe_dsn
                )
                report.state = DiagnosticState.FAILED
                report.cause = f"Cannot connect to {self.database_name}"
                return report

            report.state = DiagnosticState.CHECKING_MIGRATIONS
            await self._apply_migrations(report)

            report.state = DiagnosticState.CHECKING_STATS
            await self._collect_statistics(report)

        except Exception as e:
            self.log.critical(
                "database_verification_failed",
                database=self.database_name,
                state=report.state.value,
                error=str(e),
                error_type=type(e).__name__
            )
            report.state = DiagnosticState.FAILED
            report.outcome = DiagnosticOutcome.FAILED
            report.cause = str(e)
            return report

        report.state = DiagnosticState.VERIFIED
        report.outcome = DiagnosticOutcome.VERIFIED
        self.log.info(
            "database_verification_completed",
            database=self.database_name,
            stats_warning=report.stats_warning
        )
        return report

    async def _apply_migrations(self, report: DiagnosticReport) -> None:
        applied = await self.db.get_applied_migrations()
        pending = await self.db.get_pending_migrations()

        report.applied_migrations = len(applied)
        report.pending_migrations = list(pending)
        self.log.info("migrations_applied_count", count=len(applied))

        if not pending:
            self.log.info("no_pending_migrations")
            return

        self.log.warning("migrations_pending", count=len(pending))
        for name in pending:
            self.log.warning("migration_pending", migration=name)

        report.state = DiagnosticState.MIGRATING
        self.log.info("migrations_applying", count=len(pending))
        await self.db.migrate()
        report.migrations_applied = True
        self.log.info("migrations_applied_successfully", count=len(pending))

    async def _collect_statistics(self, report: DiagnosticReport) -> None:
        try:
            snapshot = RowCountSnapshot(
                usuarios=await self.db.count(EntityTable.USUARIOS),
                perfiles=await self.db.count(EntityTable.PERFILES),
                productos=await self.db.count(EntityTable.PRODUCTOS),
                empresas=await self.db.count(EntityTable.EMPRESAS),
            )
        except Exception as e:
            self.log.warning("statistics_query_failed", error=str(e), error_type=type(e).__name__)
            report.stats_warning = str(e)
            return

        report.statistics = snapshot
        self.log.info("database_statistics", **snapshot.model_dump())

        if snapshot.usuarios == 0:
            self.log.info("no_usuarios_found")
