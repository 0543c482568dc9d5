"""Exceptions raised by the task manager services.

Each class is one error kind. The API layer maps kinds to HTTP status codes
in ``taskapi.main``; services never build HTTP responses themselves.
"""


class TaskManagerError(Exception):
    """Base exception for all task manager operations."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or ""


class ValidationError(TaskManagerError):
    """Input is missing or malformed."""
    pass


class NotFoundError(TaskManagerError):
    """The requested resource does not exist."""
    pass


class ConflictError(TaskManagerError):
    """The resource already exists."""
    pass


class StoreError(TaskManagerError):
    """Database operation failed."""
    pass


class CacheError(TaskManagerError):
    """Cache operation failed. Never propagated outside the cache layer."""
    pass


class AuthenticationError(TaskManagerError):
    """Authentication required or credentials rejected."""
    pass


class InvalidTokenError(TaskManagerError):
    """Invalid or expired token."""
    pass


class ExternalServiceError(TaskManagerError):
    """An outbound call to a third-party service failed."""
    pass


class EmailDeliveryError(ExternalServiceError):
    """Failed to deliver email through the SMTP server."""
    pass


class WeatherNetworkError(ExternalServiceError):
    """Could not reach the weather service."""
    pass


class WeatherAPIError(ExternalServiceError):
    """The weather service answered with a non-success status."""

    def __init__(self, message: str = "", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class WeatherPayloadError(ExternalServiceError):
    """Failed to parse weather data."""
    pass
