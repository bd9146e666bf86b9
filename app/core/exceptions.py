"""Custom application exceptions."""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500, **details: Any):
        """Initialize exception with message, status code and extra response fields."""
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found", **details: Any):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404, **details)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized", **details: Any):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401, **details)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden", **details: Any):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403, **details)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request", **details: Any):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400, **details)


class ConflictException(BadRequestException):
    """Duplicate record exception, reported as 400 with the offending field."""

    def __init__(self, message: str = "Conflict", field: str | None = None):
        """Initialize with 400 status code and the conflicting field name."""
        super().__init__(message, field=field)


class ValidationException(BadRequestException):
    """Business-rule validation error carrying a list of messages."""

    def __init__(self, message: str = "Validation error", errors: list[str] | None = None):
        """Initialize with 400 status code."""
        super().__init__(message, errors=errors or [])


class CodeExpiredException(BadRequestException):
    """One-time code presented after its expiry."""

    def __init__(self, message: str = "The code has expired. Request a new one"):
        """Initialize with the code_expired flag set."""
        super().__init__(message, code_expired=True)


class EmailDeliveryException(AppException):
    """Outbound e-mail could not be delivered."""

    def __init__(self, message: str = "The e-mail could not be sent. Please try again"):
        """Initialize with 500 status code."""
        super().__init__(message, status_code=500)
