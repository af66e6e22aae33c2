# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions shared by the class application workflow domains.

Every error carries a stable ``kind`` that the API layer maps to an HTTP
status:

- InvalidInputError (invalid_input): missing or malformed request data
- NotFoundError (not_found): application, course, schedule or student absent
- ConflictError (conflict): duplicate enrollment, seats exhausted,
  mismatched roster mode, wrong application state
- ForbiddenError (forbidden): non-owner access
- ValidationFailedError (validation_failed): student identity mismatch,
  with a specific sub-reason
"""

from dataclasses import dataclass
from typing import Any


class ClassApplicationError(Exception):
    """Base exception for all class application errors.

    Attributes:
        kind: Stable error kind for API clients.
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    kind = "error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize the error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an API error body."""
        return {"kind": self.kind, "message": self.message, "details": self.details}


class InvalidInputError(ClassApplicationError):
    """Raised for missing or malformed request data."""

    kind = "invalid_input"


class NotFoundError(ClassApplicationError):
    """Raised when a referenced entity does not exist."""

    kind = "not_found"


class ForbiddenError(ClassApplicationError):
    """Raised when the caller does not own the application."""

    kind = "forbidden"


class ConflictError(ClassApplicationError):
    """Raised when the request conflicts with current state."""

    kind = "conflict"


class InvalidStateError(ConflictError):
    """Raised when the application status does not allow the operation."""


class RosterModeConflictError(ConflictError):
    """Raised when mixing individual students and a bulk roster on one course."""


class IndividualCapReachedError(ConflictError):
    """Raised when a course already holds the maximum individual students."""


class IneligibleStudentError(ConflictError):
    """Raised when a verified student cannot enroll in the schedule.

    Attributes:
        reason: already_enrolled, schedule_not_found, schedule_inactive or
            seats_full.
    """

    def __init__(self, message: str, reason: str, details: dict[str, Any] | None = None):
        self.reason = reason
        super().__init__(message, {"reason": reason, **(details or {})})


class DuplicateEnrollmentError(ConflictError):
    """Raised when a (student, course, schedule) enrollment already exists."""


class SeatsExhaustedError(ConflictError):
    """Raised when a schedule has no seat left at enrollment time."""


class ValidationFailedError(ClassApplicationError):
    """Raised when a claimed student identity does not match an account.

    Attributes:
        reason: account_not_found, phone_mismatch or name_mismatch.
    """

    kind = "validation_failed"

    def __init__(self, message: str, reason: str, details: dict[str, Any] | None = None):
        self.reason = reason
        super().__init__(message, {"reason": reason, **(details or {})})


@dataclass(frozen=True)
class RowError:
    """A single rejected roster row."""

    row_number: int
    reason: str
    message: str
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "email": self.email,
            "reason": self.reason,
            "message": self.message,
        }


class RosterValidationError(ValidationFailedError):
    """Raised when any row of a bulk roster fails validation.

    The whole upload is rejected; ``row_errors`` lists every invalid row.
    """

    def __init__(self, row_errors: list[RowError]):
        self.row_errors = row_errors
        super().__init__(
            f"{len(row_errors)} roster row(s) failed validation",
            reason="invalid_rows",
            details={"rows": [e.to_dict() for e in row_errors]},
        )
