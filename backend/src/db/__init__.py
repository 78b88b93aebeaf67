"""Database access: connection context and schema migrations."""

from backend.src.db.context import DatabaseContext, EntityTable
from backend.src.db.migrations import MigrationRunner

__all__ = ["DatabaseContext", "EntityTable", "MigrationRunner"]
