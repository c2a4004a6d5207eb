from fastapi import status


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
        self.details = details
        super().__init__(message)


class DatabaseException(AppException):
    """Exception raised for database-related errors."""

    def __init__(self, message: str = "A database error occurred."):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class TransactionException(AppException):
    """Raised when an atomic unit of work had to be rolled back."""

    def __init__(self, message: str = "The operation could not be completed."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class AuthenticationException(AppException):
    """Exception raised for authentication-related errors."""

    def __init__(self, message: str = "Unauthenticated."):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class RateLimitExceededException(AppException):
    """Exception raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Too many attempts. Please try again later.",
        retry_after: int | None = None,
    ):
        super().__init__(message, status.HTTP_429_TOO_MANY_REQUESTS)
        self.retry_after = retry_after


class NotFoundException(AppException):
    """Exception raised when a resource is not found."""

    def __init__(self, message: str = "Resource not found."):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictException(AppException):
    """
    Exception raised when a unique value is already taken.

    Reported to clients like a field validation failure, keyed by ``field``.
    """

    def __init__(self, message: str = "Resource conflict.", field: str | None = None):
        super().__init__(message, 422)
        self.field = field


class BadRequestException(AppException):
    """Exception raised for bad request errors."""

    def __init__(self, message: str = "Bad request."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


__all__ = [
    "AppException",
    "DatabaseException",
    "TransactionException",
    "AuthenticationException",
    "RateLimitExceededException",
    "NotFoundException",
    "ConflictException",
    "BadRequestException",
]
