from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timetabler.services.entries import ConflictReport


class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ConflictError(AppError):
    """Raised when a timetable entry would double-book a teacher, class or room.

    Carries every report, whether the clash was found by the in-memory
    check or by the database's uniqueness constraints.
    """
    def __init__(self, conflicts: Sequence[ConflictReport], message: str = "Schedule conflicts detected"):
        self.conflicts = list(conflicts)
        super().__init__(
            message,
            status_code=409,
            details={"conflicts": [report.to_dict() for report in self.conflicts]},
        )


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)


class PersistenceError(AppError):
    """Raised when the storage layer fails for reasons other than a schedule conflict."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=503, details=details)


class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
