"""
Domain errors raised by the services layer.

Each error carries the HTTP status it maps to; the exception handlers in
app.main turn them into {"success": false, "message": ...} responses.
Routes let these propagate instead of catching them.
"""

from fastapi import status


class ErrorMessages:
    """User-facing error strings shared across services."""
    TOKEN_REQUIRED = "Authentication token required"
    INVALID_TOKEN = "Invalid or expired token"
    INVALID_CREDENTIALS = "Invalid email or password"
    FORBIDDEN = "Access forbidden"
    USER_NOT_FOUND = "User not found"
    USER_ALREADY_EXISTS = "User already exists"
    USER_INACTIVE = "User account is inactive"
    OFFICER_NOT_FOUND = "Officer not found"
    DEPARTMENT_NOT_ASSIGNED = "Officer not assigned to this department"
    DEPARTMENT_ALREADY_ASSIGNED = "Officer already assigned to this department"
    DEPARTMENT_SELECTION_REQUIRED = "Department selection required for officer access"
    DEPARTMENT_NOT_FOUND = "Department not found"
    DEPARTMENT_ALREADY_EXISTS = "Department already exists"
    DEPARTMENT_INACTIVE = "Department is inactive"
    REPORT_NOT_FOUND = "Report not found"
    REPORT_ACCESS_DENIED = "You do not have access to this report"
    INVALID_STATUS_TRANSITION = "Invalid status transition"
    REJECTION_REASON_REQUIRED = "Rejection reason is required"
    EMERGENCY_NOT_FOUND = "Emergency not found"
    EMERGENCY_ACCESS_DENIED = "You do not have access to this emergency"
    NOTIFICATION_NOT_FOUND = "Notification not found"
    MEDIA_REQUIRED = "At least one image is required"
    LOCATION_REQUIRED = "Location coordinates are required"
    INVALID_COORDINATES = "Invalid GPS coordinates"
    REPORT_RATE_LIMITED = "Too many reports submitted, please try again later"
    AUTH_RATE_LIMITED = "Too many authentication attempts, please try again after 15 minutes"


class AppError(Exception):
    """Base class for errors that map directly to an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailedError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransitionError(ValidationFailedError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, current_status: str, requested_status: str, allowed=None):
        super().__init__(ErrorMessages.INVALID_STATUS_TRANSITION)
        self.current_status = current_status
        self.requested_status = requested_status
        self.allowed = list(allowed or [])


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT


class RateLimitError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
