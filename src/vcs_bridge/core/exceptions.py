"""Custom exceptions for vcs-bridge."""

from typing import Optional

from vcs_bridge.utils.logger import get_logger

logger = get_logger(__name__)


class VcsBridgeError(Exception):
    """Base exception for vcs-bridge."""

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details

        # Log the exception when created
        logger.debug(f"Exception raised: {self.__class__.__name__}: {message}")
        if details:
            logger.debug(f"Exception details: {details}")


class ConfigurationError(VcsBridgeError):
    """Raised when an adapter cannot be built from its configuration."""
    pass


class ValidationError(VcsBridgeError):
    """Raised when a required argument is blank."""

    def __init__(self, message: str, parameters: Optional[list] = None, details: str = None):
        super().__init__(message, details)
        self.parameters = parameters or []


class ParseError(VcsBridgeError):
    """Raised when a webhook id is not in the platform's id form."""
    pass


class ArchiveError(VcsBridgeError):
    """Raised when a downloaded archive cannot be extracted safely."""
    pass


class OperationCancelledError(VcsBridgeError):
    """Raised when the caller's context was cancelled."""
    pass


class DeadlineExceededError(OperationCancelledError):
    """Raised when the caller's context deadline has passed."""
    pass


class APIError(VcsBridgeError):
    """Raised when a platform call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: str = None):
        super().__init__(message, details)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Raised when the platform rejects the credentials."""
    pass


class AccessPermissionError(APIError):
    """Raised when lacking required permissions."""
    pass


class NotFoundError(APIError):
    """Raised when a resource is not found."""
    pass


class RateLimitError(APIError):
    """Raised when hitting rate limits."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = 429,
        reset_at: Optional[int] = None,
        details: str = None
    ):
        super().__init__(message, status_code=status_code, details=details)
        self.reset_at = reset_at


def error_for_status(status_code: Optional[int]) -> type:
    """
    Pick the APIError subclass matching an HTTP status.

    Args:
        status_code: HTTP status returned by the platform, if any

    Returns:
        Exception class to raise
    """
    return {
        401: AuthenticationError,
        403: AccessPermissionError,
        404: NotFoundError,
        429: RateLimitError,
    }.get(status_code, APIError)
