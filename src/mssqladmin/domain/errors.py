"""
Error taxonomy for guarded mutations.

Infrastructure code translates library exceptions (pyodbc, pywinrm,
subprocess) into these types at the boundary, so the mutator only ever
deals with the categories below.
"""

from __future__ import annotations

from mssqladmin.domain.enums import ErrorCategory


class AdminError(Exception):
    """Base class for all mssqladmin errors."""

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(self, message: str, *, target: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.target = target

    def __str__(self) -> str:
        if self.target:
            return f"{self.target}: {self.message}"
        return self.message


class TargetConnectionError(AdminError):
    """Cannot establish a session to the target (includes timeouts)."""

    category = ErrorCategory.CONNECTION


class StateReadError(AdminError):
    """State query failed after a successful connection."""

    category = ErrorCategory.READ


class MutationError(AdminError):
    """The side-effecting change failed."""

    category = ErrorCategory.MUTATION


class CascadeError(AdminError):
    """Dependent service stop/start failed."""

    category = ErrorCategory.CASCADE


class RequestValidationError(AdminError, ValueError):
    """Malformed or insufficient input, raised before any network call."""

    category = ErrorCategory.VALIDATION
