"""
Exception hierarchy for the backend service.

All application errors derive from BackendError so that handlers can
distinguish expected failures from programming errors.
"""

from typing import Any, Dict, Optional


class BackendError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(BackendError):
    """Raised when required configuration is missing or invalid."""
    pass


class DatabaseError(BackendError):
    """Raised for database-level failures."""
    pass


class MigrationError(DatabaseError):
    """Raised when a schema migration cannot be applied."""

    def __init__(self, migration_name: str, reason: str):
        message = f"Migration '{migration_name}' failed: {reason}"
        super().__init__(message, {"migration": migration_name})
        self.migration_name = migration_name


class InvalidTokenError(BackendError):
    """Raised when a bearer token fails validation."""
    pass
