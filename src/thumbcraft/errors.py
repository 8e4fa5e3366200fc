"""Request-level error taxonomy.

Each error carries the HTTP status the app's exception handler maps it to.
Per-item failures inside a batch are not errors; see ``BatchOutcome``.
"""

from fastapi import status


class StudioError(Exception):
    """Base class for errors surfaced to the caller as ``{"error": message}``."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(StudioError):
    """No valid session; nothing was attempted."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ValidationError(StudioError):
    """Input has the wrong shape or is out of bounds; nothing was attempted."""

    status_code = status.HTTP_400_BAD_REQUEST


class QuotaExhaustedError(StudioError):
    """No thumbnail credits left; checked before any generation call."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(StudioError):
    """The row does not exist or belongs to another user."""

    status_code = status.HTTP_404_NOT_FOUND


class TotalBatchFailure(StudioError):
    """Every item of a multi-item batch failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
