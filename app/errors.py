"""API error taxonomy. Each error renders as JSON {"error": message}."""

from fastapi import status


class ApiError(Exception):
    """Base class for errors converted directly into an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthError(ApiError):
    """Missing credentials or token (401); invalid token uses 403."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class StorageError(ApiError):
    """Underlying store failure. The message never carries driver details."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Database error"
