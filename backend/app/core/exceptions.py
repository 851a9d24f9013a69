"""
Domain errors for GymDesk.

Every error carries the HTTP status it maps to. The handlers registered in
app.main turn them into the failure envelope:

    {"success": false, "message": "...", "error": ...}
"""
from typing import Any, Optional

from fastapi import status


class GymDeskError(Exception):
    """Base class for errors raised by services and routers."""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, error: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.error = error


class ValidationError(GymDeskError):
    """Bad or missing input (amount, date format, duration...)."""
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidDurationError(ValidationError):
    """Duration label outside the allowed set."""


class NotFoundError(GymDeskError):
    """Aggregate or history index does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(GymDeskError):
    """Duplicate unique value (phone, email)."""
    status_code = status.HTTP_409_CONFLICT


class InvalidOperationError(GymDeskError):
    """Operation is not allowed on the current ledger state."""
    status_code = status.HTTP_400_BAD_REQUEST


class CycleLimitExceededError(InvalidOperationError):
    """An adjustment cannot be placed within its cycles' bounds."""


class OutOfRangeError(InvalidOperationError):
    """A payment month falls outside the member's cycle timeline."""
